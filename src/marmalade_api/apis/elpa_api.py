"""The ``package.el`` archive protocol: listing and package downloads."""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from marmalade_api.apis.deps import get_archive_store
from marmalade_api.domain.models import PackageKind, parse_version
from marmalade_api.errors import LoadError
from marmalade_api.services.archive_service import ArchiveStore

LOGGER = logging.getLogger(__name__)

_PACKAGE_FILE = re.compile(r"^(.*)-([0-9.]+)\.(el|tar)$")

GNU_BUILTIN_PACKAGES = "http://elpa.gnu.org/packages/builtin-packages"

router = APIRouter(prefix="/packages", tags=["ELPA"])


@router.get("/archive-contents", summary="Package listing for package.el")
async def archive_contents(
    store: ArchiveStore = Depends(get_archive_store),
) -> Response:
    return PlainTextResponse(await store.archive_contents())


@router.get("/builtin-packages", summary="Redirect to the GNU ELPA builtin list")
async def builtin_packages() -> Response:
    return RedirectResponse(GNU_BUILTIN_PACKAGES, status_code=301)


@router.get("/{filename}", summary="Download one package version")
async def download_package(
    filename: str,
    store: ArchiveStore = Depends(get_archive_store),
) -> Response:
    match = _PACKAGE_FILE.match(filename)
    if match is None:
        return PlainTextResponse(f"Cannot GET /packages/{filename}\n", status_code=404)
    name, version_text, extension = match.groups()
    version = parse_version(version_text)
    kind = PackageKind.from_extension(extension)

    try:
        data, package_version = await store.load_package_data(name, version, kind)
    except LoadError as exc:
        return PlainTextResponse(exc.message + "\n", status_code=404)
    except FileNotFoundError:
        LOGGER.warning("Blob missing for %s", filename)
        return PlainTextResponse(
            f"Don't have any version of {name}.{extension}\n",
            status_code=404,
        )

    media_type = "text/plain" if package_version.kind is PackageKind.SINGLE else "application/x-tar"
    return Response(content=data, media_type=media_type)
