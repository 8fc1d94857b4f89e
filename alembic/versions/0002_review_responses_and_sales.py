from __future__ import annotations

import secrets

import sqlalchemy as sa
from alembic import op

revision = "0002_review_responses_and_sales"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("review_requests") as batch:
        batch.add_column(sa.Column("token", sa.String(), nullable=True))

    bind = op.get_bind()
    rows = bind.execute(sa.text("SELECT id FROM review_requests WHERE token IS NULL")).fetchall()
    for row in rows:
        bind.execute(
            sa.text("UPDATE review_requests SET token = :token WHERE id = :id"),
            {"token": secrets.token_urlsafe(24), "id": row[0]},
        )

    with op.batch_alter_table("review_requests") as batch:
        batch.alter_column("token", existing_type=sa.String(), nullable=False)
    op.create_index("ix_review_requests_token", "review_requests", ["token"], unique=True)

    op.create_table(
        "review_responses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "review_request_id",
            sa.Integer(),
            sa.ForeignKey("review_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("public_display", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "technician_id",
            sa.Integer(),
            sa.ForeignKey("technicians.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_review_responses_id", "review_responses", ["id"], unique=False)
    op.create_index("ix_review_responses_review_request_id", "review_responses", ["review_request_id"], unique=True)
    op.create_index("ix_review_responses_technician_id", "review_responses", ["technician_id"], unique=False)
    op.create_index("ix_review_responses_company_id", "review_responses", ["company_id"], unique=False)

    op.create_table(
        "sales_people",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("commission_rate", sa.Numeric(5, 4), nullable=False, server_default="0.10"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_sales_people_id", "sales_people", ["id"], unique=False)
    op.create_index("ix_sales_people_user_id", "sales_people", ["user_id"], unique=True)
    op.create_index("ix_sales_people_email", "sales_people", ["email"], unique=True)

    op.create_table(
        "company_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "sales_person_id",
            sa.Integer(),
            sa.ForeignKey("sales_people.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subscription_plan", sa.String(), nullable=False),
        sa.Column("plan_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("billing_period", sa.String(), nullable=False, server_default="monthly"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_company_assignments_id", "company_assignments", ["id"], unique=False)
    op.create_index("ix_company_assignments_sales_person_id", "company_assignments", ["sales_person_id"], unique=False)
    op.create_index("ix_company_assignments_company_id", "company_assignments", ["company_id"], unique=True)

    op.create_table(
        "sales_commissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "sales_person_id",
            sa.Integer(),
            sa.ForeignKey("sales_people.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("period", sa.String(length=7), nullable=False),
        sa.Column("base_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("billing_period", sa.String(), nullable=False),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "sales_person_id",
            "company_id",
            "period",
            name="uq_sales_commissions_person_company_period",
        ),
    )
    op.create_index("ix_sales_commissions_id", "sales_commissions", ["id"], unique=False)
    op.create_index("ix_sales_commissions_sales_person_id", "sales_commissions", ["sales_person_id"], unique=False)
    op.create_index("ix_sales_commissions_company_id", "sales_commissions", ["company_id"], unique=False)


def downgrade() -> None:
    op.drop_table("sales_commissions")
    op.drop_table("company_assignments")
    op.drop_table("sales_people")
    op.drop_table("review_responses")
    op.drop_index("ix_review_requests_token", table_name="review_requests")

    with op.batch_alter_table("review_requests") as batch:
        batch.drop_column("token")
