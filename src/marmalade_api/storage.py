"""Filesystem blob store for uploaded package contents."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from marmalade_api.config.settings import get_settings
from marmalade_api.domain.models import PackageKind, Version, format_version

_SAFE_PATTERN = re.compile(r"[^A-Za-z0-9+._-]+")


def _safe_component(value: str) -> str:
    cleaned = _SAFE_PATTERN.sub("_", value.strip())
    cleaned = cleaned.strip(".")
    return cleaned or "blob"


def blob_key(key: str, kind: PackageKind, version: Version) -> str:
    """Storage key for one package version, ``<key>.<ext>/<version>``."""

    return f"{_safe_component(key)}.{kind.extension}/{format_version(version)}"


def get_storage_root() -> Path:
    root = get_settings().storage_root.expanduser().resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


class BlobStore:
    """Key-addressed byte storage rooted at a directory."""

    def __init__(self, root: Optional[Path] = None) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        if self._root is None:
            return get_storage_root()
        self._root.mkdir(parents=True, exist_ok=True)
        return self._root

    def path_for(self, key: str) -> Path:
        return self.root / key

    def read(self, key: str) -> bytes:
        """Return the blob contents; raises ``FileNotFoundError`` when absent."""

        return self.path_for(key).read_bytes()

    def write(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        path.unlink()
        parent = path.parent
        if parent != self.root and not any(parent.iterdir()):
            parent.rmdir()


__all__ = ["BlobStore", "blob_key", "get_storage_root"]
