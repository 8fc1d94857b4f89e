from __future__ import annotations

import logging
import os
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from rankitpro.core import config

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"
STARTUP_PREFIX = "[STARTUP]"


def _runtime_env() -> str:
    return os.getenv("ENVIRONMENT", config.ENV).strip().lower()


def validate_database_environment() -> None:
    env = _runtime_env()
    if env in {"prod", "production"} and config.DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", MIGRATIONS_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")


def validate_session_settings() -> None:
    if not config.SESSION_SECRET:
        logger.critical("%s SESSION_SECRET is not configured", STARTUP_PREFIX)
        raise RuntimeError("SESSION_SECRET must be configured outside development")
    if config.SESSION_SECRET == config.DEV_SESSION_SECRET:
        if _runtime_env() in {"prod", "production"}:
            raise RuntimeError("Development session secret cannot be used in production")
        logger.warning("%s using development session secret", STARTUP_PREFIX)
    if config.SESSION_COOKIE_SAMESITE == "none" and not config.SESSION_COOKIE_SECURE:
        logger.warning("%s SameSite=None without Secure will be rejected by browsers", STARTUP_PREFIX)


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    env = _runtime_env()
    if env == "test":
        logger.info("%s skipped migration check in test environment", MIGRATIONS_PREFIX)
        return

    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", MIGRATIONS_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")

    alembic_cfg = Config(str(alembic_config_path))
    script_directory = ScriptDirectory.from_config(alembic_cfg)
    expected_heads = set(script_directory.get_heads())

    with engine.connect() as connection:
        inspector = inspect(connection)
        if "alembic_version" not in inspector.get_table_names():
            logger.critical("%s alembic_version table missing", MIGRATIONS_PREFIX)
            raise RuntimeError("Database has no migration state")

        current_rows = connection.exec_driver_sql("SELECT version_num FROM alembic_version").fetchall()

    current_heads = {row[0] for row in current_rows if row and row[0]}
    if current_heads != expected_heads:
        logger.critical(
            "%s pending migration detected current=%s expected=%s",
            MIGRATIONS_PREFIX,
            sorted(current_heads),
            sorted(expected_heads),
        )
        raise RuntimeError("Pending migrations detected")

    logger.info("%s migration state verified", MIGRATIONS_PREFIX)
