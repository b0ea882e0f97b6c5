"""Domain records for packages, package versions and users."""

from .models import (
    Package,
    PackageKind,
    PackageVersion,
    Requirement,
    User,
    Version,
    format_version,
    package_key,
    parse_version,
)

__all__ = [
    "Package",
    "PackageKind",
    "PackageVersion",
    "Requirement",
    "User",
    "Version",
    "format_version",
    "package_key",
    "parse_version",
]
