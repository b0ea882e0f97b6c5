"""Engine and session factory for the registry database."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import sessionmaker

from marmalade_api.config.settings import PROJECT_ROOT, get_settings

from .base import Base
from . import models  # noqa: F401  # registers tables on Base.metadata

DEFAULT_DB_PATH = PROJECT_ROOT / "var" / "data" / "marmalade.db"


def _file_backed(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and bool(url.database) and url.database != ":memory:"


def resolve_database_url(raw_url: str | None = None) -> str:
    """Return the configured database URL, anchoring SQLite files at the project root."""

    url = make_url(raw_url or get_settings().database_url or f"sqlite:///{DEFAULT_DB_PATH.as_posix()}")
    if _file_backed(url):
        db_path = Path(url.database)
        if not db_path.is_absolute():
            db_path = PROJECT_ROOT / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        url = url.set(database=db_path.as_posix())
    return url.render_as_string(hide_password=False)


def build_engine(database_url: str) -> Engine:
    is_sqlite = make_url(database_url).get_backend_name() == "sqlite"
    built = create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )
    if is_sqlite:
        # Owner and version rows rely on ON DELETE CASCADE.
        @event.listens_for(built, "connect")
        def _enable_foreign_keys(dbapi_connection, _record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return built


DATABASE_URL = resolve_database_url()

engine: Engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


__all__ = [
    "Base",
    "DATABASE_URL",
    "SessionLocal",
    "build_engine",
    "engine",
    "resolve_database_url",
]
