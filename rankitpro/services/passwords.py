from __future__ import annotations

import bcrypt

from rankitpro.core.config import BCRYPT_ROUNDS

# bcrypt só considera os primeiros 72 bytes
BCRYPT_MAX_BYTES = 72


def _normalize_password_for_bcrypt(password: str) -> bytes:
    return (password or "").encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_normalize_password_for_bcrypt(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_normalize_password_for_bcrypt(password), password_hash.encode("utf-8"))
    except ValueError:
        # hash malformado
        return False
