"""Password hashing and secret generation for registry accounts."""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

PASSWORD_ITERATIONS = 120_000


def generate_secret(nbytes: int = 32) -> str:
    """Return ``nbytes`` of randomness rendered as base64, used for tokens and salts."""

    return base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")


def generate_temporary_password() -> str:
    return secrets.token_hex(10)


def hash_password(password: str, salt: str, *, iterations: int = PASSWORD_ITERATIONS) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    )
    return digest.hex()


def verify_password(password: str, salt: str, digest: str) -> bool:
    return hmac.compare_digest(hash_password(password, salt), digest)
