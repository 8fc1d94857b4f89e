from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from rankitpro.models.user import ROLE_SUPER_ADMIN, User
from rankitpro.services.directory import Directory
from rankitpro.services.passwords import hash_password

logger = logging.getLogger(__name__)
BOOTSTRAP_PREFIX = "[SUPER_ADMIN_BOOTSTRAP]"


def _password_looks_hashed(password: str) -> bool:
    return password.startswith(("$2a$", "$2b$", "$2y$"))


def _resolve_password_hash(password: str) -> str:
    if _password_looks_hashed(password):
        logger.info("%s password already hashed; storing as-is", BOOTSTRAP_PREFIX)
        return password
    return hash_password(password)


def upsert_super_admin(
    db: Session,
    *,
    email: str,
    username: str,
    password: Optional[str],
    reset_password: bool = True,
) -> tuple[User, bool]:
    """Create the super admin, or reactivate it (and optionally reset its password)."""
    directory = Directory(db)
    existing = directory.get_user_by_email(email)
    if existing:
        if existing.role != ROLE_SUPER_ADMIN:
            raise ValueError(f"User {email} exists with role {existing.role}")
        changes: dict = {"active": True}
        if password and reset_password:
            changes["password_hash"] = _resolve_password_hash(password)
        directory.update_user(existing, **changes)
        directory.commit()
        return existing, False

    if not password:
        raise ValueError("Password is required to create a new super admin.")

    admin = directory.create_user(
        email=email,
        username=username,
        password_hash=_resolve_password_hash(password),
        role=ROLE_SUPER_ADMIN,
        company_id=None,
    )
    directory.commit()
    db.refresh(admin)
    return admin, True


def bootstrap_super_admin(db: Session, *, email: str, password: str, username: str) -> Optional[User]:
    if not email or not password:
        logger.warning("%s skipped: configure BOOTSTRAP_SUPER_ADMIN_EMAIL/PASSWORD.", BOOTSTRAP_PREFIX)
        return None

    user, created = upsert_super_admin(db, email=email, username=username, password=password, reset_password=False)
    if created:
        logger.info("%s created id=%s email=%s", BOOTSTRAP_PREFIX, user.id, user.email)
    else:
        logger.info("%s exists id=%s email=%s", BOOTSTRAP_PREFIX, user.id, user.email)
    return user
