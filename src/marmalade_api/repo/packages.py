from __future__ import annotations

import logging
from typing import Iterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from marmalade_api.db.models import PackageOwnerRecord, PackageRecord, PackageVersionRecord
from marmalade_api.db.session import SessionLocal
from marmalade_api.domain.models import (
    Package,
    PackageKind,
    PackageVersion,
    User,
    Version,
    format_version,
)
from marmalade_api.errors import InputError, PermissionsError
from marmalade_api.repo.common import _key, _now

LOGGER = logging.getLogger(__name__)


def _version_from_model(record: PackageVersionRecord) -> PackageVersion:
    return PackageVersion(
        name=record.name,
        version=tuple(record.version_parts),
        kind=PackageKind(record.kind),
        description=record.description,
        commentary=record.commentary,
        headers=dict(record.headers or {}),
        requires=[(name, tuple(version)) for name, version in record.requires or []],
        created_at=record.created_at,
        downloads=record.downloads or 0,
    )


def _version_to_model(version: PackageVersion, *, seq: int) -> PackageVersionRecord:
    return PackageVersionRecord(
        package_key=version.key,
        version=version.version_string,
        version_parts=list(version.version),
        seq=seq,
        name=version.name,
        kind=version.kind.value,
        description=version.description,
        commentary=version.commentary,
        headers=dict(version.headers),
        requires=[[name, list(required)] for name, required in version.requires],
        downloads=0,
        created_at=version.created_at or _now(),
    )


def _package_from_model(package: PackageRecord, *, include_versions: bool) -> Package:
    latest = (
        PackageVersion.from_dict(package.latest_version) if package.latest_version else None
    )
    versions: list[PackageVersion] = []
    if include_versions:
        versions = sorted(
            (_version_from_model(record) for record in package.versions),
            key=lambda item: item.version,
        )
    return Package(
        key=package.key,
        name=package.name,
        owners={owner.user_key: owner.email for owner in package.owners},
        created_at=package.created_at,
        downloads=package.downloads or 0,
        latest_version=latest,
        versions=versions,
    )


def _load_package(
    session: Session,
    key: str,
    *,
    include_versions: bool,
) -> PackageRecord | None:
    stmt = (
        select(PackageRecord)
        .where(PackageRecord.key == key)
        .options(selectinload(PackageRecord.owners))
    )
    if include_versions:
        stmt = stmt.options(selectinload(PackageRecord.versions))
    return session.execute(stmt).scalar_one_or_none()


def _load_version(session: Session, key: str, version: Version) -> PackageVersionRecord | None:
    return session.get(PackageVersionRecord, (key, format_version(version)))


def _max_by_version(records: list[PackageVersionRecord]) -> PackageVersionRecord | None:
    if not records:
        return None
    return max(records, key=lambda record: tuple(record.version_parts))


def get_package(key: str, *, include_versions: bool = True) -> Optional[Package]:
    with SessionLocal() as session:
        package = _load_package(session, key, include_versions=include_versions)
        if package is None:
            return None
        return _package_from_model(package, include_versions=include_versions)


def get_package_version(
    key: str,
    version: Version,
) -> tuple[Optional[Package], Optional[PackageVersion]]:
    """Return the package and one of its versions, or ``(None, None)``."""

    with SessionLocal() as session:
        record = _load_version(session, key, version)
        if record is None:
            return None, None
        package = _load_package(session, key, include_versions=False)
        if package is None:
            return None, None
        return (
            _package_from_model(package, include_versions=False),
            _version_from_model(record),
        )


def get_most_recent_version(key: str) -> Optional[PackageVersion]:
    """Highest stored version of ``key`` under version ordering."""

    with SessionLocal() as session:
        records = session.execute(
            select(PackageVersionRecord).where(PackageVersionRecord.package_key == key)
        ).scalars().all()
        record = _max_by_version(list(records))
        return _version_from_model(record) if record is not None else None


def store_package_version(version: PackageVersion, user: User) -> tuple[Package, PackageVersion]:
    """Insert ``version``, creating its package with ``user`` as owner when it is new.

    The ownership check, the package bootstrap and the version insert share a
    single transaction; a concurrent upload of the same version loses on the
    ``(package_key, version)`` primary key.
    """

    key = version.key
    try:
        with SessionLocal() as session:
            now = _now()
            package = _load_package(session, key, include_versions=False)
            if package is None:
                package = PackageRecord(
                    key=key,
                    name=version.name,
                    downloads=0,
                    latest_version=None,
                    created_at=now,
                )
                package.owners.append(
                    PackageOwnerRecord(user_key=user.key, email=user.email, added_at=now)
                )
                session.add(package)
                session.flush()
                LOGGER.info("Created package %s owned by %s", key, user.key)
            elif not any(owner.user_key == user.key for owner in package.owners):
                raise PermissionsError(
                    f'User "{user.name}" does not own package "{package.name}"',
                    user=user.key,
                    package=package.name,
                )

            seq = session.execute(
                select(func.coalesce(func.max(PackageVersionRecord.seq), 0)).where(
                    PackageVersionRecord.package_key == key
                )
            ).scalar_one()
            version.created_at = now
            version.downloads = 0
            record = _version_to_model(version, seq=seq + 1)
            session.add(record)
            session.flush()

            current = package.latest_version
            if current is None or version.version >= tuple(current["version"]):
                package.latest_version = version.to_dict()
            session.commit()
            session.refresh(package)
            return (
                _package_from_model(package, include_versions=False),
                _version_from_model(record),
            )
    except IntegrityError as exc:
        _, existing = get_package_version(key, version.version)
        if existing is not None:
            raise InputError(
                f'Package "{version.name}" version {version.version_string} already exists'
            ) from exc
        # Lost the race to create the package row.
        package_now = get_package(key, include_versions=False)
        if package_now is None:
            raise
        if user.key not in package_now.owners:
            raise PermissionsError(
                f'User "{user.name}" does not own package "{package_now.name}"',
                user=user.key,
                package=package_now.name,
            ) from exc
        return store_package_version(version, user)


def record_download(key: str, version: Version) -> None:
    with SessionLocal() as session:
        session.execute(
            update(PackageVersionRecord)
            .where(
                PackageVersionRecord.package_key == key,
                PackageVersionRecord.version == format_version(version),
            )
            .values(downloads=PackageVersionRecord.downloads + 1)
        )
        session.execute(
            update(PackageRecord)
            .where(PackageRecord.key == key)
            .values(downloads=PackageRecord.downloads + 1)
        )
        session.commit()


def add_package_owner(key: str, user_key: str, email: str) -> Optional[Package]:
    with SessionLocal() as session:
        package = _load_package(session, key, include_versions=False)
        if package is None:
            return None
        if not any(owner.user_key == user_key for owner in package.owners):
            package.owners.append(
                PackageOwnerRecord(user_key=user_key, email=email, added_at=_now())
            )
            session.commit()
            session.refresh(package)
        return _package_from_model(package, include_versions=False)


def remove_package_owner(key: str, user_key: str) -> Optional[Package]:
    with SessionLocal() as session:
        package = _load_package(session, key, include_versions=False)
        if package is None:
            return None
        for owner in list(package.owners):
            if owner.user_key == user_key:
                package.owners.remove(owner)
        session.commit()
        session.refresh(package)
        return _package_from_model(package, include_versions=False)


def delete_package_version(key: str, version: Version) -> Optional[Package]:
    """Delete one version row and recompute the latest version.

    Returns the updated package, or ``None`` once the last version is gone
    and the package row has been removed with it.
    """

    with SessionLocal() as session:
        record = _load_version(session, key, version)
        if record is not None:
            session.delete(record)
            session.flush()
        package = _load_package(session, key, include_versions=True)
        if package is None:
            session.commit()
            return None
        latest = _max_by_version(list(package.versions))
        if latest is None:
            session.delete(package)
            session.commit()
            return None
        package.latest_version = _version_from_model(latest).to_dict()
        session.commit()
        session.refresh(package)
        return _package_from_model(package, include_versions=True)


def delete_package(key: str) -> None:
    with SessionLocal() as session:
        package = session.get(PackageRecord, key)
        if package is not None:
            session.delete(package)
            session.commit()


def iter_packages(
    *,
    key_contains: Optional[str] = None,
    owner_key: Optional[str] = None,
) -> Iterator[Package]:
    stmt = (
        select(PackageRecord)
        .options(selectinload(PackageRecord.owners))
        .order_by(PackageRecord.key)
    )
    if key_contains:
        stmt = stmt.where(PackageRecord.key.contains(key_contains, autoescape=True))
    if owner_key:
        stmt = stmt.where(PackageRecord.owners.any(PackageOwnerRecord.user_key == owner_key))
    with SessionLocal() as session:
        for package in session.execute(stmt).scalars():
            yield _package_from_model(package, include_versions=False)


def iter_package_versions(
    *,
    package_key: Optional[str] = None,
    kind: Optional[PackageKind] = None,
) -> Iterator[PackageVersion]:
    stmt = select(PackageVersionRecord).order_by(
        PackageVersionRecord.package_key,
        PackageVersionRecord.seq,
    )
    if package_key:
        stmt = stmt.where(PackageVersionRecord.package_key == _key(package_key))
    if kind is not None:
        stmt = stmt.where(PackageVersionRecord.kind == kind.value)
    with SessionLocal() as session:
        for record in session.execute(stmt).scalars():
            yield _version_from_model(record)
