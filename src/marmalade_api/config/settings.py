"""Marmalade configuration using pydantic-settings."""

from __future__ import annotations

import socket
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal, Optional

from pydantic import Field, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]


class MarmaladeApiSettings(BaseSettings):
    """Process/runtime settings for the API server."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="MARMALADE_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1", description="Bind address for the API.")
    port: PositiveInt = Field(default=8320, description="Port for the API.")
    reload: bool = Field(default=False, description="Enable uvicorn auto-reload (dev only).")
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = Field(
        default="info",
        description="Log level for the API / uvicorn.",
    )


class MarmaladeSettings(BaseSettings):
    """Storage, persistence and mail settings for the registry."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="MARMALADE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL; defaults to a SQLite file under var/data.",
    )
    storage_root: Path = Field(
        default=PROJECT_ROOT / "var" / "storage",
        description="Directory holding uploaded package contents.",
    )
    hostname: str = Field(
        default_factory=socket.gethostname,
        description="Public host name, used for the From address of emails.",
    )
    email_from: Optional[str] = Field(
        default=None,
        description="From address for password reset emails.",
    )
    smtp_host: Optional[str] = Field(
        default=None,
        description="SMTP relay; when unset, outgoing mail is only logged.",
    )
    smtp_port: PositiveInt = Field(default=25, description="SMTP relay port.")
    min_password_length: PositiveInt = Field(
        default=6,
        description="Shortest password accepted at registration.",
    )

    def sender_address(self) -> str:
        return self.email_from or f"Marmalade Server <marmalade@{self.hostname}>"


@lru_cache()
def get_settings() -> MarmaladeSettings:
    """Return memoized registry settings."""

    return MarmaladeSettings()


@lru_cache()
def get_api_settings() -> MarmaladeApiSettings:
    """Return memoized API process settings."""

    return MarmaladeApiSettings()
