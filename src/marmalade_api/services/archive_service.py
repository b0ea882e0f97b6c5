"""Package archive operations: uploads, downloads, ownership and listings."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError

from marmalade_api.domain.models import (
    Package,
    PackageKind,
    PackageVersion,
    User,
    Version,
    format_version,
    package_key,
)
from marmalade_api.elisp.sexp import archive_contents, archive_entry
from marmalade_api.errors import InputError, LoadError, LoadErrorReason, PermissionsError
from marmalade_api.packages.parser import parse_package
from marmalade_api.repo import packages as packages_repo
from marmalade_api.repo import users as users_repo
from marmalade_api.storage import BlobStore, blob_key

LOGGER = logging.getLogger(__name__)


def _package_absent(name: str) -> LoadError:
    return LoadError(f"Package {name} does not exist", reason=LoadErrorReason.PACKAGE_ABSENT)


class ArchiveStore:
    def __init__(self, blobs: Optional[BlobStore] = None) -> None:
        self._blobs = blobs or BlobStore()

    async def load_package(self, name: str) -> Optional[Package]:
        return packages_repo.get_package(package_key(name))

    async def load_package_version(
        self,
        name: str,
        version: Version,
    ) -> tuple[Optional[Package], Optional[PackageVersion]]:
        return packages_repo.get_package_version(package_key(name), version)

    async def load_error(self, name: str, version: Version) -> LoadError:
        """Describe why ``version`` of ``name`` could not be found."""

        latest = packages_repo.get_most_recent_version(package_key(name))
        if latest is None:
            return _package_absent(name)
        return LoadError(
            f"Package {name} doesn't have version {format_version(version)}. "
            f"Most recent version is {latest.version_string}",
            reason=LoadErrorReason.VERSION_ABSENT,
        )

    async def load_package_data(
        self,
        name: str,
        version: Version,
        kind: PackageKind,
    ) -> tuple[bytes, PackageVersion]:
        key = package_key(name)
        _, package_version = packages_repo.get_package_version(key, version)
        if package_version is None:
            raise await self.load_error(name, version)
        if package_version.kind is not kind:
            raise LoadError(
                f"Package {name} is in {package_version.kind.value} format, "
                f"not {kind.extension}",
                reason=LoadErrorReason.KIND_MISMATCH,
            )

        data = await asyncio.to_thread(self._blobs.read, blob_key(key, kind, version))
        self._count_download(key, version)
        return data, package_version

    def _count_download(self, key: str, version: Version) -> None:
        try:
            packages_repo.record_download(key, version)
        except SQLAlchemyError as exc:
            LOGGER.warning(
                "Failed to count download of %s %s: %s",
                key,
                format_version(version),
                exc,
            )

    async def save_package_version(self, package_version: PackageVersion, user: User) -> Package:
        """Record a parsed version on behalf of ``user``.

        A new package is created with ``user`` as its only owner; an existing
        one requires ``user`` to be an owner already. The returned package
        carries just the stored version in ``versions``.
        """

        package, stored = packages_repo.store_package_version(package_version, user)
        package.versions = [stored]
        LOGGER.info(
            "User %s uploaded %s %s",
            user.key,
            package.key,
            stored.version_string,
        )
        return package

    async def save_package(self, data: bytes, user: User, kind: PackageKind) -> Package:
        package_version = await parse_package(data, kind)
        package = await self.save_package_version(package_version, user)
        key = blob_key(package_version.key, kind, package_version.version)
        try:
            await asyncio.to_thread(self._blobs.write, key, data)
        except OSError:
            LOGGER.exception("Failed to store %s, dropping its version record", key)
            packages_repo.delete_package_version(package_version.key, package_version.version)
            raise
        return package

    async def save_package_file(
        self,
        path: Path,
        user: User,
        kind: Optional[PackageKind] = None,
    ) -> Package:
        kind = kind or PackageKind.from_extension(path.suffix)
        data = await asyncio.to_thread(path.read_bytes)
        return await self.save_package(data, user, kind)

    async def check_package_owner(self, user: User, name: str) -> Package:
        package = await self.load_package(name)
        if package is None:
            raise _package_absent(name)
        if user.key not in package.owners:
            raise PermissionsError(
                f'User "{user.name}" does not own package "{name}"',
                user=user.key,
                package=package.name,
            )
        return package

    async def add_package_owner(self, name: str, user: User, new_owner_name: str) -> Package:
        package = await self.check_package_owner(user, name)
        new_owner = users_repo.get_user(new_owner_name)
        if new_owner is None:
            raise InputError(f"No user named {new_owner_name}")
        updated = packages_repo.add_package_owner(package.key, new_owner.key, new_owner.email)
        if updated is None:
            raise _package_absent(name)
        LOGGER.info("User %s added %s as owner of %s", user.key, new_owner.key, package.key)
        return updated

    async def remove_package_owner(self, name: str, user: User, removed_owner_name: str) -> Package:
        package = await self.check_package_owner(user, name)
        removed_key = package_key(removed_owner_name)
        if set(package.owners) == {removed_key}:
            raise InputError(f"Cannot remove the last owner of {package.name}")
        updated = packages_repo.remove_package_owner(package.key, removed_key)
        if updated is None:
            raise _package_absent(name)
        LOGGER.info(
            "User %s removed %s as owner of %s",
            user.key,
            removed_key,
            package.key,
        )
        return updated

    async def remove_package_version(self, name: str, version: Version) -> Optional[Package]:
        """Delete one version; the package goes with its last version.

        Returns the remaining package, or ``None`` when it was removed.
        """

        key = package_key(name)
        _, package_version = packages_repo.get_package_version(key, version)
        if package_version is None:
            raise await self.load_error(name, version)

        blob = blob_key(key, package_version.kind, version)
        try:
            await asyncio.to_thread(self._blobs.delete, blob)
        except FileNotFoundError:
            LOGGER.warning("Blob %s was already missing", blob)
        return packages_repo.delete_package_version(key, version)

    async def remove_package(self, name: str) -> None:
        key = package_key(name)
        package = packages_repo.get_package(key)
        if package is None:
            raise _package_absent(name)
        for package_version in package.versions:
            blob = blob_key(key, package_version.kind, package_version.version)
            try:
                await asyncio.to_thread(self._blobs.delete, blob)
            except OSError as exc:
                LOGGER.warning("Failed to delete blob %s: %s", blob, exc)
        packages_repo.delete_package(key)
        LOGGER.info("Removed package %s", key)

    def package_stream(
        self,
        *,
        key_contains: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> Iterator[Package]:
        return packages_repo.iter_packages(
            key_contains=key_contains,
            owner_key=package_key(owner) if owner else None,
        )

    def package_version_stream(
        self,
        *,
        name: Optional[str] = None,
        kind: Optional[PackageKind] = None,
    ) -> Iterator[PackageVersion]:
        return packages_repo.iter_package_versions(package_key=name, kind=kind)

    def search_packages(self, query: str) -> Iterator[Package]:
        # Substring match on the key only; there is no ranking.
        return self.package_stream(key_contains=package_key(query))

    async def archive_contents(self) -> str:
        """Render the ``package.el`` listing from each package's latest version."""

        entries = []
        for package in self.package_stream():
            latest = package.latest_version
            if latest is None:
                continue
            entries.append(
                archive_entry(
                    latest.name,
                    latest.version,
                    latest.requires,
                    latest.description,
                    latest.kind.value,
                )
            )
        return archive_contents(entries)
