"""FastAPI dependency providers for the registry services."""

from __future__ import annotations

from functools import lru_cache

from starlette.datastructures import FormData

from marmalade_api.http.errors import required_parameter
from marmalade_api.services.archive_service import ArchiveStore
from marmalade_api.services.users_service import UserStore


@lru_cache()
def get_archive_store() -> ArchiveStore:
    return ArchiveStore()


@lru_cache()
def get_user_store() -> UserStore:
    return UserStore()


def required_field(form: FormData, name: str) -> str:
    value = form.get(name)
    if value is None or not isinstance(value, str):
        raise required_parameter(name)
    return value


def optional_field(form: FormData, name: str) -> str | None:
    value = form.get(name)
    return value if isinstance(value, str) and value else None
