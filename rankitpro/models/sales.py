from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint

from rankitpro.core.database import Base


class SalesPerson(Base):
    __tablename__ = "sales_people"

    id = Column(Integer, primary_key=True, index=True)
    # Conta sales_staff que enxerga as próprias comissões; opcional.
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    phone = Column(String, nullable=True)
    # Fração (0.10 = 10%).
    commission_rate = Column(Numeric(5, 4), nullable=False, default=0.10)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class CompanyAssignment(Base):
    __tablename__ = "company_assignments"

    id = Column(Integer, primary_key=True, index=True)
    sales_person_id = Column(Integer, ForeignKey("sales_people.id", ondelete="CASCADE"), nullable=False, index=True)
    # Uma empresa é atribuída a no máximo um vendedor.
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    subscription_plan = Column(String, nullable=False)
    plan_price = Column(Numeric(10, 2), nullable=False)
    billing_period = Column(String, nullable=False, default="monthly")
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class SalesCommission(Base):
    __tablename__ = "sales_commissions"
    __table_args__ = (
        UniqueConstraint("sales_person_id", "company_id", "period", name="uq_sales_commissions_person_company_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sales_person_id = Column(Integer, ForeignKey("sales_people.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    # YYYY-MM
    period = Column(String(7), nullable=False)
    base_amount = Column(Numeric(10, 2), nullable=False)
    commission_rate = Column(Numeric(5, 4), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    billing_period = Column(String, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
