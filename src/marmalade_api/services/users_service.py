from __future__ import annotations

import hmac
import logging
import re
from typing import Any, Optional

from marmalade_api.config.settings import MarmaladeSettings, get_settings
from marmalade_api.db.security import (
    generate_secret,
    generate_temporary_password,
    hash_password,
    verify_password,
)
from marmalade_api.domain.models import User
from marmalade_api.errors import InputError
from marmalade_api.repo import users as users_repo
from marmalade_api.services.notifications import Notifier, build_notifier

LOGGER = logging.getLogger(__name__)

_EMAIL = re.compile(r".+@.+")

RESET_SUBJECT = "Marmalade password reset"


def _same_token(expected: str, given: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), given.encode("utf-8"))


class UserStore:
    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        settings: Optional[MarmaladeSettings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._notifier = notifier or build_notifier(self._settings)

    def _check_password(self, password: Optional[str]) -> str:
        minimum = self._settings.min_password_length
        if not password or len(password) < minimum:
            raise InputError(f"Passwords must be at least {minimum} characters long.")
        return password

    @staticmethod
    def _check_email(email: Optional[str]) -> str:
        if not email or not _EMAIL.match(email):
            raise InputError(f"Invalid email address: {email or ''}")
        return email

    async def register_user(self, name: str, email: str, password: str) -> User:
        if not name:
            raise InputError("Usernames can't be empty")
        self._check_password(password)
        self._check_email(email)
        if users_repo.get_user(name) is not None:
            raise InputError(f"User {name} already exists")

        salt = generate_secret()
        user = users_repo.create_user(
            name=name,
            email=email,
            digest=hash_password(password, salt),
            salt=salt,
            token=generate_secret(),
        )
        LOGGER.info("Registered user %s", user.key)
        return user

    async def load_user(self, name: str, password: str) -> Optional[User]:
        """Return the user when ``password`` matches, ``None`` otherwise."""

        user = users_repo.get_user(name)
        if user is None or not verify_password(password, user.salt, user.digest):
            return None
        return user

    async def load_user_with_token(self, name: str, token: str) -> User:
        user = users_repo.get_user(name) if name else None
        if user is None or not token or not _same_token(user.token, token):
            raise InputError("Username or token invalid")
        return user

    async def load_public_user(self, name: str) -> Optional[dict[str, Any]]:
        user = users_repo.get_user(name)
        return user.to_public_dict() if user is not None else None

    async def update_user(
        self,
        name: str,
        token: str,
        *,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        user = await self.load_user_with_token(name, token)
        digest = None
        if email is not None:
            self._check_email(email)
        if password is not None:
            digest = hash_password(self._check_password(password), user.salt)
        updated = users_repo.update_user(user.name, email=email, digest=digest)
        if updated is None:
            raise InputError("Username or token invalid")
        return updated

    async def reset_password(self, name: str) -> None:
        user = users_repo.get_user(name)
        if user is None:
            raise InputError(f"User {name} doesn't exist")
        password = generate_temporary_password()
        users_repo.update_user(user.name, digest=hash_password(password, user.salt))
        LOGGER.info("Reset password for %s", user.key)
        await self._notifier.send(
            user.email,
            self._settings.sender_address(),
            RESET_SUBJECT,
            f"Temporary password: {password}",
        )
