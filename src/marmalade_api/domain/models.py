"""Records exchanged between the parsers, the stores and the HTTP layer."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from marmalade_api.errors import InputError, PackageSyntaxError

Version = Tuple[int, ...]
Requirement = Tuple[str, Version]

_VERSION_SEGMENT = re.compile(r"[0-9]+")
_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9+._-]+")


class PackageKind(str, Enum):
    SINGLE = "single"
    TAR = "tar"

    @property
    def extension(self) -> str:
        return "el" if self is PackageKind.SINGLE else "tar"

    @classmethod
    def from_extension(cls, extension: str) -> "PackageKind":
        value = extension.lower().lstrip(".")
        if value == "el":
            return cls.SINGLE
        if value == "tar":
            return cls.TAR
        raise InputError(f"Unknown file extension: {extension}")


def package_key(name: str) -> str:
    """Canonical lookup key for a package or user name."""

    return _UNSAFE_KEY_CHARS.sub("_", name.lower())


def parse_version(value: str) -> Version:
    """Parse a dot-separated version such as ``1.2.3`` into ``(1, 2, 3)``."""

    segments = value.split(".")
    if not all(_VERSION_SEGMENT.fullmatch(segment) for segment in segments):
        raise PackageSyntaxError(
            f'Version "{value}" must contain only numbers separated by dots.'
        )
    return tuple(int(segment) for segment in segments)


def format_version(version: Version) -> str:
    return ".".join(str(part) for part in version)


@dataclass
class PackageVersion:
    name: str
    version: Version
    kind: PackageKind
    description: Optional[str] = None
    commentary: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    requires: List[Requirement] = field(default_factory=list)
    created_at: Optional[datetime] = None
    downloads: int = 0

    @property
    def key(self) -> str:
        return package_key(self.name)

    @property
    def version_string(self) -> str:
        return format_version(self.version)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "commentary": self.commentary,
            "headers": dict(self.headers),
            "requires": [[name, list(version)] for name, version in self.requires],
            "version": list(self.version),
            "type": self.kind.value,
            "created": self.created_at.isoformat() if self.created_at else None,
            "downloads": self.downloads,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PackageVersion":
        created = payload.get("created")
        return cls(
            name=payload["name"],
            version=tuple(payload["version"]),
            kind=PackageKind(payload["type"]),
            description=payload.get("description"),
            commentary=payload.get("commentary"),
            headers=dict(payload.get("headers") or {}),
            requires=[
                (name, tuple(version)) for name, version in payload.get("requires") or []
            ],
            created_at=datetime.fromisoformat(created) if created else None,
            downloads=payload.get("downloads") or 0,
        )


@dataclass
class Package:
    key: str
    name: str
    owners: Dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    downloads: int = 0
    latest_version: Optional[PackageVersion] = None
    versions: List[PackageVersion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "owners": sorted(self.owners),
            "created": self.created_at.isoformat() if self.created_at else None,
            "downloads": self.downloads,
            "versions": [version.to_dict() for version in self.versions],
        }


@dataclass
class User:
    key: str
    name: str
    email: str
    digest: str
    salt: str
    token: str
    packages: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def to_public_dict(self) -> dict[str, Any]:
        return {"name": self.name, "packages": list(self.packages)}


__all__ = [
    "Version",
    "Requirement",
    "PackageKind",
    "package_key",
    "parse_version",
    "format_version",
    "PackageVersion",
    "Package",
    "User",
]
