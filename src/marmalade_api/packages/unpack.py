"""Unpack uploaded package archives into a scratch directory."""

from __future__ import annotations

import io
import logging
import tarfile
from pathlib import Path
from typing import Callable, Union

from marmalade_api.errors import PackageSyntaxError

LOGGER = logging.getLogger(__name__)

ArchiveSource = Union[bytes, Path]
Unpacker = Callable[[ArchiveSource, Path], None]


def unpack_tar(source: ArchiveSource, destination: Path) -> None:
    """Extract a tar archive (in memory or on disk) into ``destination``."""

    LOGGER.debug("Extracting tar archive into %s", destination)
    try:
        if isinstance(source, (bytes, bytearray)):
            archive = tarfile.open(fileobj=io.BytesIO(source), mode="r:*")
        else:
            archive = tarfile.open(source, mode="r:*")
        with archive:
            archive.extractall(destination, filter="data")
    except tarfile.TarError as exc:
        raise PackageSyntaxError(f"Invalid tar archive: {exc}") from exc
