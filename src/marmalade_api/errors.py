"""Error taxonomy shared by the parsers, the archive store and the user store."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class MarmaladeError(Exception):
    """Base error for registry operations."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PackageSyntaxError(MarmaladeError):
    """Raised when an uploaded package or one of its declarations is malformed."""


class SexpSyntaxError(PackageSyntaxError):
    """Raised by the s-expression parser when a required token is missing."""

    def __init__(self, expected: str, remaining: str) -> None:
        super().__init__(f"Lisp parser error: expected {expected}, was {remaining!r}")
        self.expected = expected
        self.remaining = remaining


class InputError(MarmaladeError):
    """Raised when well-formed input is rejected (bad user data, duplicate versions)."""


class PermissionsError(MarmaladeError):
    def __init__(
        self,
        message: str,
        *,
        user: Optional[str] = None,
        package: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.user = user
        self.package = package


class LoadErrorReason(str, Enum):
    PACKAGE_ABSENT = "package_absent"
    VERSION_ABSENT = "version_absent"
    KIND_MISMATCH = "kind_mismatch"


class LoadError(MarmaladeError):
    """Raised when a requested package, version or package kind is unavailable."""

    def __init__(self, message: str, *, reason: LoadErrorReason) -> None:
        super().__init__(message)
        self.reason = reason


__all__ = [
    "MarmaladeError",
    "PackageSyntaxError",
    "SexpSyntaxError",
    "InputError",
    "PermissionsError",
    "LoadErrorReason",
    "LoadError",
]
