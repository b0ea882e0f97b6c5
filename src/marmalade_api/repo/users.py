from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from marmalade_api.db.models import PackageOwnerRecord, UserRecord
from marmalade_api.db.session import SessionLocal
from marmalade_api.domain.models import User
from marmalade_api.errors import InputError
from marmalade_api.repo.common import _key, _now


def _owned_package_keys(session, user_key: str) -> list[str]:
    return list(
        session.execute(
            select(PackageOwnerRecord.package_key)
            .where(PackageOwnerRecord.user_key == user_key)
            .order_by(PackageOwnerRecord.package_key)
        ).scalars()
    )


def _user_from_model(session, record: UserRecord) -> User:
    return User(
        key=record.key,
        name=record.name,
        email=record.email,
        digest=record.digest,
        salt=record.salt,
        token=record.token,
        packages=_owned_package_keys(session, record.key),
        created_at=record.created_at,
    )


def get_user(name: str) -> Optional[User]:
    with SessionLocal() as session:
        record = session.get(UserRecord, _key(name))
        if record is None:
            return None
        return _user_from_model(session, record)


def create_user(
    *,
    name: str,
    email: str,
    digest: str,
    salt: str,
    token: str,
) -> User:
    key = _key(name)
    try:
        with SessionLocal() as session:
            record = UserRecord(
                key=key,
                name=name,
                email=email,
                digest=digest,
                salt=salt,
                token=token,
                created_at=_now(),
            )
            session.add(record)
            session.commit()
            return _user_from_model(session, record)
    except IntegrityError as exc:
        raise InputError(f"User {name} already exists") from exc


def update_user(
    name: str,
    *,
    email: Optional[str] = None,
    digest: Optional[str] = None,
) -> Optional[User]:
    """Persist a new email and/or password digest; owner rows follow the email."""

    with SessionLocal() as session:
        record = session.get(UserRecord, _key(name))
        if record is None:
            return None
        if email is not None:
            record.email = email
            for ownership in record.ownerships:
                ownership.email = email
        if digest is not None:
            record.digest = digest
        session.commit()
        return _user_from_model(session, record)
