#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from rankitpro.core.config import IS_DEV  # noqa: E402
from rankitpro.core.database import SessionLocal  # noqa: E402
from rankitpro.services.bootstrap import upsert_super_admin  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cria ou atualiza um super admin.")
    parser.add_argument("--email", required=True, help="Email do super admin")
    parser.add_argument("--username", default="admin", help="Username do super admin")
    parser.add_argument("--password", help="Senha (obrigatória na criação)")
    parser.add_argument(
        "--keep-password",
        action="store_true",
        help="Não altera a senha de um super admin existente",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    db = SessionLocal()
    try:
        admin, created = upsert_super_admin(
            db,
            email=args.email.strip().lower(),
            username=args.username,
            password=args.password,
            reset_password=not args.keep_password,
        )
    except ValueError as exc:
        print(str(exc))
        return 1
    finally:
        db.close()

    action = "created" if created else "updated"
    print(f"Super admin {action}: id={admin.id} email={admin.email}")
    if IS_DEV:
        password_info = args.password if args.password else "<mantida>"
        print(f"Resumo DEV -> Email: {admin.email} | Senha: {password_info}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
