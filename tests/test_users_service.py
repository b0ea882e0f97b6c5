import pytest

from marmalade_api.config.settings import MarmaladeSettings
from marmalade_api.db.security import hash_password, verify_password
from marmalade_api.errors import InputError
from marmalade_api.services.users_service import UserStore


@pytest.mark.asyncio
async def test_register_and_login(users):
    user = await users.register_user("Alice", "alice@example.com", "secret-password")

    assert user.key == "alice"
    assert user.name == "Alice"
    assert user.token and user.salt
    assert user.digest != "secret-password"
    assert verify_password("secret-password", user.salt, user.digest)

    assert (await users.load_user("alice", "secret-password")).name == "Alice"
    assert await users.load_user("alice", "wrong-password") is None
    assert await users.load_user("nobody", "secret-password") is None


@pytest.mark.asyncio
async def test_tokens_and_salts_are_unique(users):
    alice = await users.register_user("alice", "alice@example.com", "secret-password")
    bob = await users.register_user("bob", "bob@example.com", "secret-password")

    assert alice.token != bob.token
    assert alice.salt != bob.salt
    assert alice.digest != bob.digest


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("name", "email", "password", "message"),
    [
        ("", "a@example.com", "secret-password", "Usernames can't be empty"),
        ("alice", "a@example.com", "short", "Passwords must be at least 6 characters long."),
        ("alice", "not-an-email", "secret-password", "Invalid email address: not-an-email"),
    ],
)
async def test_registration_validation(users, name, email, password, message):
    with pytest.raises(InputError) as excinfo:
        await users.register_user(name, email, password)

    assert excinfo.value.message == message


@pytest.mark.asyncio
async def test_duplicate_registration_is_case_insensitive(users):
    await users.register_user("alice", "alice@example.com", "secret-password")

    with pytest.raises(InputError, match="User ALICE already exists"):
        await users.register_user("ALICE", "other@example.com", "secret-password")


@pytest.mark.asyncio
async def test_load_user_with_token(users):
    alice = await users.register_user("alice", "alice@example.com", "secret-password")

    assert (await users.load_user_with_token("Alice", alice.token)).key == "alice"
    for name, token in (("alice", "bad-token"), ("nobody", alice.token), ("alice", "")):
        with pytest.raises(InputError, match="Username or token invalid"):
            await users.load_user_with_token(name, token)


@pytest.mark.asyncio
async def test_public_user_hides_credentials(users):
    await users.register_user("alice", "alice@example.com", "secret-password")

    assert await users.load_public_user("alice") == {"name": "alice", "packages": []}
    assert await users.load_public_user("nobody") is None


@pytest.mark.asyncio
async def test_update_user(users):
    alice = await users.register_user("alice", "alice@example.com", "secret-password")

    updated = await users.update_user(
        "alice",
        alice.token,
        email="new@example.com",
        password="another-password",
    )

    assert updated.email == "new@example.com"
    assert await users.load_user("alice", "secret-password") is None
    assert await users.load_user("alice", "another-password") is not None
    with pytest.raises(InputError):
        await users.update_user("alice", alice.token, password="short")
    with pytest.raises(InputError):
        await users.update_user("alice", "bad-token", email="x@example.com")


@pytest.mark.asyncio
async def test_reset_password_mails_a_temporary_password(users, notifier):
    await users.register_user("alice", "alice@example.com", "secret-password")

    await users.reset_password("alice")

    assert await users.load_user("alice", "secret-password") is None
    (to_address, from_address, subject, body), = notifier.sent
    assert to_address == "alice@example.com"
    assert from_address.startswith("Marmalade Server <marmalade@")
    assert subject == "Marmalade password reset"
    assert body.startswith("Temporary password: ")
    temporary = body[len("Temporary password: "):]
    assert await users.load_user("alice", temporary) is not None


@pytest.mark.asyncio
async def test_reset_password_for_unknown_user(users, notifier):
    with pytest.raises(InputError, match="User nobody doesn't exist"):
        await users.reset_password("nobody")
    assert notifier.sent == []


def test_hash_depends_on_salt():
    assert hash_password("secret", "salt-a") != hash_password("secret", "salt-b")
    assert hash_password("secret", "salt-a") == hash_password("secret", "salt-a")


@pytest.mark.asyncio
async def test_non_ascii_token_is_rejected(users):
    await users.register_user("alice", "alice@example.com", "secret-password")

    with pytest.raises(InputError, match="Username or token invalid"):
        await users.load_user_with_token("alice", "jeton-à-moi")


@pytest.mark.asyncio
async def test_password_message_follows_configured_minimum(notifier):
    settings = MarmaladeSettings(min_password_length=10)
    store = UserStore(notifier=notifier, settings=settings)

    with pytest.raises(InputError) as excinfo:
        await store.register_user("alice", "alice@example.com", "nine-char")

    assert excinfo.value.message == "Passwords must be at least 10 characters long."
