"""SQLAlchemy models for registry persistence."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(Base):
    __tablename__ = "users"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(128))
    email: Mapped[str] = mapped_column(String(255))
    digest: Mapped[str] = mapped_column(String(128))
    salt: Mapped[str] = mapped_column(String(128))
    token: Mapped[str] = mapped_column(String(128), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    ownerships: Mapped[list["PackageOwnerRecord"]] = relationship(
        "PackageOwnerRecord",
        back_populates="user",
        cascade="all, delete-orphan",
    )


class PackageRecord(Base):
    __tablename__ = "packages"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    downloads: Mapped[int] = mapped_column(Integer, default=0)
    latest_version: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    versions: Mapped[list["PackageVersionRecord"]] = relationship(
        "PackageVersionRecord",
        back_populates="package",
        cascade="all, delete-orphan",
    )
    owners: Mapped[list["PackageOwnerRecord"]] = relationship(
        "PackageOwnerRecord",
        back_populates="package",
        cascade="all, delete-orphan",
    )


class PackageVersionRecord(Base):
    __tablename__ = "package_versions"

    package_key: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("packages.key", ondelete="CASCADE"),
        primary_key=True,
    )
    version: Mapped[str] = mapped_column(String(64), primary_key=True)
    version_parts: Mapped[list[int]] = mapped_column(JSON)
    seq: Mapped[int] = mapped_column(Integer, default=0)
    name: Mapped[str] = mapped_column(String(255))
    kind: Mapped[str] = mapped_column(String(16))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    commentary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    headers: Mapped[dict[str, str]] = mapped_column(JSON, default=dict)
    requires: Mapped[list[list[Any]]] = mapped_column(JSON, default=list)
    downloads: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    package: Mapped[PackageRecord] = relationship("PackageRecord", back_populates="versions")


class PackageOwnerRecord(Base):
    __tablename__ = "package_owners"

    package_key: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("packages.key", ondelete="CASCADE"),
        primary_key=True,
    )
    user_key: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.key", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(255))
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    package: Mapped[PackageRecord] = relationship("PackageRecord", back_populates="owners")
    user: Mapped[UserRecord] = relationship("UserRecord", back_populates="ownerships")
