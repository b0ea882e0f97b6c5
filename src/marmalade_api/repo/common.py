from __future__ import annotations

from datetime import datetime, timezone

from marmalade_api.domain.models import package_key


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _key(value: str) -> str:
    return package_key(value)
