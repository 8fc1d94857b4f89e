#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from rankitpro.core.config import DATABASE_URL, IS_PROD  # noqa: E402
from rankitpro.core.database import Base, SessionLocal, engine  # noqa: E402
from rankitpro.models.company import PLAN_PRO, PLAN_STARTER, PLAN_USAGE_LIMITS  # noqa: E402
from rankitpro.models.user import ROLE_COMPANY_ADMIN, ROLE_TECHNICIAN  # noqa: E402
from rankitpro.services.directory import Directory  # noqa: E402
from rankitpro.services.passwords import hash_password  # noqa: E402

DEMO_COMPANIES = (
    {
        "name": "Test Company",
        "plan": PLAN_PRO,
        "admin_email": "admin@testcompany.com",
        "admin_username": "testcompany_admin",
        "admin_password": "company123",
        "technician": ("John Smith", "john@testcompany.com", "john_tech"),
    },
    {
        "name": "Second Company",
        "plan": PLAN_STARTER,
        "admin_email": "admin@secondcompany.com",
        "admin_username": "secondcompany_admin",
        "admin_password": "company123",
        "technician": ("Maria Lopez", "maria@secondcompany.com", "maria_tech"),
    },
)
TECHNICIAN_PASSWORD = "tech1234"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Popula o banco com empresas de demonstração.")
    parser.add_argument("--force", action="store_true", help="Permite executar em produção")
    return parser.parse_args()


def seed(directory: Directory) -> list[str]:
    created: list[str] = []
    for demo in DEMO_COMPANIES:
        if directory.get_user_by_email(demo["admin_email"]) is not None:
            continue

        company = directory.create_company(
            name=demo["name"],
            plan=demo["plan"],
            usage_limit=PLAN_USAGE_LIMITS[demo["plan"]],
            is_active=True,
        )
        directory.create_user(
            email=demo["admin_email"],
            username=demo["admin_username"],
            password_hash=hash_password(demo["admin_password"]),
            role=ROLE_COMPANY_ADMIN,
            company_id=company.id,
        )
        tech_name, tech_email, tech_username = demo["technician"]
        tech_user = directory.create_user(
            email=tech_email,
            username=tech_username,
            password_hash=hash_password(TECHNICIAN_PASSWORD),
            role=ROLE_TECHNICIAN,
            company_id=company.id,
        )
        directory.create_technician(
            name=tech_name,
            email=tech_email,
            company_id=company.id,
            user_id=tech_user.id,
            active=True,
        )
        created.append(f"{company.name} (id={company.id}) admin={demo['admin_email']}")

    directory.commit()
    return created


def main() -> int:
    args = parse_args()
    if IS_PROD and not args.force:
        print("Seed de demonstração desabilitado em produção. Use --force.")
        return 1

    if DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed(Directory(db))
    finally:
        db.close()

    if not created:
        print("Demo data already present.")
        return 0
    for line in created:
        print(f"Created company: {line}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
