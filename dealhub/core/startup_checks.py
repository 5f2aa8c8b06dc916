from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from dealhub.core.config import DATABASE_URL, ENV_NORMALIZED, IS_DEV, IS_PROD, IS_TEST

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"


def validate_database_environment(database_url: str = DATABASE_URL) -> None:
    if IS_PROD and database_url.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", MIGRATIONS_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")


def _expected_heads(alembic_config_path: Path) -> set[str]:
    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", MIGRATIONS_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")
    script_directory = ScriptDirectory.from_config(Config(str(alembic_config_path)))
    return set(script_directory.get_heads())


def _applied_heads(engine: Engine) -> set[str]:
    with engine.connect() as connection:
        if not inspect(connection).has_table("alembic_version"):
            logger.critical("%s alembic_version table missing", MIGRATIONS_PREFIX)
            raise RuntimeError("Database has no migration state")
        rows = connection.exec_driver_sql("SELECT version_num FROM alembic_version").fetchall()
    return {row[0] for row in rows if row and row[0]}


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    """Refuse to start when the database is behind the Alembic head. Skipped in dev and test."""
    if IS_DEV or IS_TEST:
        logger.info("%s skipped migration check env=%s", MIGRATIONS_PREFIX, ENV_NORMALIZED)
        return

    expected = _expected_heads(alembic_config_path)
    applied = _applied_heads(engine)
    if applied != expected:
        logger.critical(
            "%s pending migration detected applied=%s expected=%s",
            MIGRATIONS_PREFIX,
            sorted(applied),
            sorted(expected),
        )
        raise RuntimeError("Pending migrations detected")

    logger.info("%s migration state verified heads=%s", MIGRATIONS_PREFIX, sorted(applied))
