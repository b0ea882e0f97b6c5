"""Apply the registry's Alembic migrations from code."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from .session import DATABASE_URL

LOGGER = logging.getLogger(__name__)

PROJECT_DIR = Path(__file__).resolve().parents[3]


def alembic_config(database_url: str = DATABASE_URL) -> Config:
    config = Config(str(PROJECT_DIR / "alembic.ini"))
    # Keep the application's logging setup; env.py skips fileConfig.
    config.attributes["configure_logger"] = False
    config.set_main_option("script_location", str(PROJECT_DIR / "migrations"))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def upgrade_database(revision: str = "head") -> None:
    """Bring the configured database up to ``revision``."""

    LOGGER.info("Upgrading registry database to %s", revision)
    command.upgrade(alembic_config(), revision)
