"""Registry database helpers."""

from .base import Base
from .session import (
    DATABASE_URL,
    SessionLocal,
    engine,
)

__all__ = [
    "Base",
    "DATABASE_URL",
    "SessionLocal",
    "engine",
]
