"""``/v1/packages`` and ``/v1/search``: browse, upload and manage owners."""

from __future__ import annotations

import re
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, Request, UploadFile
from fastapi.responses import Response

from marmalade_api.apis.deps import (
    get_archive_store,
    get_user_store,
    required_field,
)
from marmalade_api.domain.models import Package, PackageKind, parse_version
from marmalade_api.errors import InputError
from marmalade_api.http.errors import bad_request, not_found
from marmalade_api.http.responses import render
from marmalade_api.services.archive_service import ArchiveStore
from marmalade_api.services.users_service import UserStore

_EXTENSION = re.compile(r"\.([^.]+)$")
_OWNER_FIELD = re.compile(r"^owner[0-9]*$")

router = APIRouter(prefix="/v1", tags=["Packages"])


def _package_payload(package: Package) -> dict:
    return package.to_dict()


def _owners_from_form(form) -> list[str]:
    owners = [
        value
        for key, value in form.multi_items()
        if _OWNER_FIELD.match(key) and isinstance(value, str) and value
    ]
    if not owners:
        raise InputError('Required parameter "owner" not given')
    return owners


def _owner_message(verb: str, owners: list[str], name: str) -> str:
    plural = "" if len(owners) == 1 else "s"
    return f"Successfully {verb} {', '.join(owners)} as owner{plural} of {name}"


@router.get("/packages/{name}", summary="Get a package with all of its versions")
async def get_package(
    request: Request,
    name: str,
    store: ArchiveStore = Depends(get_archive_store),
) -> Response:
    package = await store.load_package(name)
    if package is None:
        raise not_found(f'Package "{name}" doesn\'t exist')
    package.versions.reverse()
    return render(request, {"message": f"Got {package.name}", "package": _package_payload(package)})


@router.get("/packages/{name}/latest", summary="Get a package with its latest version")
async def get_latest_package_version(
    request: Request,
    name: str,
    store: ArchiveStore = Depends(get_archive_store),
) -> Response:
    package = await store.load_package(name)
    if package is None or package.latest_version is None:
        raise not_found(f'Package "{name}" doesn\'t exist')
    package.versions = [package.latest_version]
    return render(request, {"message": f"Got {package.name}", "package": _package_payload(package)})


@router.get("/packages/{name}/{version}", summary="Get one version of a package")
async def get_package_version(
    request: Request,
    name: str,
    version: str = Path(..., pattern=r"^[0-9]+(?:\.[0-9]+)*$"),
    store: ArchiveStore = Depends(get_archive_store),
) -> Response:
    package, package_version = await store.load_package_version(name, parse_version(version))
    if package is None or package_version is None:
        raise not_found(f'Package "{name}" version "{version}" doesn\'t exist')
    package.versions = [package_version]
    return render(
        request,
        {
            "message": f"Got {package.name}, version {package_version.version_string}",
            "package": _package_payload(package),
        },
    )


@router.post("/packages", summary="Upload a package version")
async def upload_package(
    request: Request,
    name: Optional[str] = Form(None),
    token: Optional[str] = Form(None),
    package: Optional[UploadFile] = File(None),
    archives: ArchiveStore = Depends(get_archive_store),
    users: UserStore = Depends(get_user_store),
) -> Response:
    if not name:
        raise bad_request("Name parameter required")
    if not token:
        raise bad_request("Token parameter required")
    if package is None:
        raise bad_request("Package file upload parameter required")

    user = await users.load_user_with_token(name, token)
    filename = package.filename or ""
    extension = _EXTENSION.search(filename)
    if extension is None:
        raise bad_request(f"Couldn't determine file extension for {filename}")
    kind = PackageKind.from_extension(extension.group(1))

    data = await package.read()
    saved = await archives.save_package(data, user, kind)
    version = saved.versions[0]
    return render(
        request,
        {
            "message": f"Saved {saved.name}, version {version.version_string}",
            "package": _package_payload(saved),
        },
    )


@router.post("/packages/{name}/owners", summary="Add owners to a package")
async def add_package_owners(
    request: Request,
    name: str,
    archives: ArchiveStore = Depends(get_archive_store),
    users: UserStore = Depends(get_user_store),
) -> Response:
    form = await request.form()
    user = await users.load_user_with_token(
        required_field(form, "name"),
        required_field(form, "token"),
    )
    owners = _owners_from_form(form)
    for owner in owners:
        await archives.add_package_owner(name, user, owner)
    return render(request, {"message": _owner_message("added", owners, name)})


@router.delete("/packages/{name}/owners", summary="Remove owners from a package")
async def remove_package_owners(
    request: Request,
    name: str,
    archives: ArchiveStore = Depends(get_archive_store),
    users: UserStore = Depends(get_user_store),
) -> Response:
    form = await request.form()
    user = await users.load_user_with_token(
        required_field(form, "name"),
        required_field(form, "token"),
    )
    owners = _owners_from_form(form)
    for owner in owners:
        await archives.remove_package_owner(name, user, owner)
    return render(request, {"message": _owner_message("removed", owners, name)})


@router.get("/search", summary="Naive substring search over package names")
async def search_packages(
    request: Request,
    q: str = Query("", description="Substring of the package name"),
    store: ArchiveStore = Depends(get_archive_store),
) -> Response:
    packages = []
    for package in store.search_packages(q):
        if package.latest_version is not None:
            package.versions = [package.latest_version]
        packages.append(_package_payload(package))
    return render(
        request,
        {"message": f"Found {len(packages)} package(s)", "packages": packages},
    )
