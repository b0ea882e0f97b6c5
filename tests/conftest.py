from __future__ import annotations

import io
import os
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Callable, Optional

import pytest

_SCRATCH = Path(tempfile.mkdtemp(prefix="marmalade-tests."))
os.environ["MARMALADE_DATABASE_URL"] = f"sqlite:///{(_SCRATCH / 'registry.db').as_posix()}"
os.environ["MARMALADE_STORAGE_ROOT"] = str(_SCRATCH / "storage")
os.environ.pop("MARMALADE_SMTP_HOST", None)

from fastapi.testclient import TestClient  # noqa: E402

from marmalade_api.apis import deps  # noqa: E402
from marmalade_api.app import app  # noqa: E402
from marmalade_api.config.settings import get_settings  # noqa: E402
from marmalade_api.db.base import Base  # noqa: E402
from marmalade_api.db.session import engine  # noqa: E402
from marmalade_api.services.archive_service import ArchiveStore  # noqa: E402
from marmalade_api.services.users_service import UserStore  # noqa: E402


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str, str]] = []

    async def send(self, to_address: str, from_address: str, subject: str, body: str) -> None:
        self.sent.append((to_address, from_address, subject, body))


@pytest.fixture(autouse=True)
def registry_db():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    storage = get_settings().storage_root
    shutil.rmtree(storage, ignore_errors=True)
    storage.mkdir(parents=True, exist_ok=True)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def archives() -> ArchiveStore:
    return ArchiveStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def users(notifier: RecordingNotifier) -> UserStore:
    return UserStore(notifier=notifier)


@pytest.fixture
def client(archives: ArchiveStore, users: UserStore) -> TestClient:
    app.dependency_overrides[deps.get_archive_store] = lambda: archives
    app.dependency_overrides[deps.get_user_store] = lambda: users
    return TestClient(app)


@pytest.fixture
def make_elisp() -> Callable[..., str]:
    def _make(
        name: str = "foo",
        version: str = "1.2.3",
        *,
        description: str = "A test package",
        requires: Optional[str] = None,
        commentary: str = "Hello world.",
    ) -> str:
        lines = [f";;; {name}.el --- {description}", ""]
        if version:
            lines.append(f";; Version: {version}")
        if requires:
            lines.append(f";; Package-Requires: {requires}")
        lines += [
            "",
            ";;; Commentary:",
            "",
            f";; {commentary}",
            "",
            f"(provide '{name})",
            f";;; {name}.el ends here",
            "",
        ]
        return "\n".join(lines)

    return _make


@pytest.fixture
def make_tar() -> Callable[..., bytes]:
    def _make(
        name: str = "baz",
        version: str = "1.0",
        *,
        declared_name: Optional[str] = None,
        declared_version: Optional[str] = None,
        description: str = "A tarred package",
        requires: str = "",
        files: Optional[dict[str, str | bytes]] = None,
        directory: Optional[str] = None,
        with_declaration: bool = True,
    ) -> bytes:
        declaration = (
            f'(define-package "{declared_name or name}" "{declared_version or version}"\n'
            f'  "{description}"'
            + (f"\n  (quote {requires})" if requires else "")
            + ")\n"
        )
        contents = {f"{name}-pkg.el": declaration} if with_declaration else {}
        contents.update(files or {})
        root = directory or f"{name}-{version}"

        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w") as archive:
            folder = tarfile.TarInfo(root)
            folder.type = tarfile.DIRTYPE
            folder.mode = 0o755
            archive.addfile(folder)
            for filename, text in contents.items():
                data = text if isinstance(text, bytes) else text.encode("utf-8")
                info = tarfile.TarInfo(f"{root}/{filename}")
                info.size = len(data)
                info.mode = 0o644
                archive.addfile(info, io.BytesIO(data))
        return buffer.getvalue()

    return _make
