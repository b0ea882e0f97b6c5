#!/usr/bin/env python
"""Upload package files from disk into the archive on behalf of a user.

Usage:
    python scripts/import_packages.py --user alice --token TOKEN foo.el bar-1.0.tar

With ``--check`` the files are only parsed and their metadata printed; nothing
is written to the archive and no credentials are needed.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from marmalade_api.db.migrations import upgrade_database  # noqa: E402
from marmalade_api.domain.models import PackageKind, PackageVersion  # noqa: E402
from marmalade_api.errors import MarmaladeError  # noqa: E402
from marmalade_api.packages.parser import parse_elisp_file, parse_tar_file  # noqa: E402
from marmalade_api.services.archive_service import ArchiveStore  # noqa: E402
from marmalade_api.services.users_service import UserStore  # noqa: E402

LOGGER = logging.getLogger("marmalade.import")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("files", nargs="+", help="Package files (.el or .tar).")
    parser.add_argument("--user", help="Name of the uploading user.")
    parser.add_argument("--token", help="Upload token of the uploading user.")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only parse the files and print their metadata.",
    )
    parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug"],
        default="info",
        help="Log level for import output.",
    )
    args = parser.parse_args()
    if not args.check and not (args.user and args.token):
        parser.error("--user and --token are required unless --check is given")
    return args


def _describe(package_version: PackageVersion) -> str:
    requires = ", ".join(
        f"{name} {'.'.join(str(part) for part in version)}"
        for name, version in package_version.requires
    )
    return (
        f"{package_version.name} {package_version.version_string} "
        f"[{package_version.kind.value}] {package_version.description or ''}"
        + (f" (requires {requires})" if requires else "")
    )


async def check_file(path: Path) -> PackageVersion:
    if PackageKind.from_extension(path.suffix) is PackageKind.SINGLE:
        return await parse_elisp_file(path)
    return await parse_tar_file(path)


async def run(args: argparse.Namespace) -> int:
    failures = 0
    archives = ArchiveStore()
    user = None
    if not args.check:
        user = await UserStore().load_user_with_token(args.user, args.token)

    for name in args.files:
        path = Path(name)
        try:
            if args.check:
                print(_describe(await check_file(path)))
                continue
            package = await archives.save_package_file(path, user)
            LOGGER.info(
                "Imported %s version %s",
                package.name,
                package.versions[0].version_string,
            )
        except (MarmaladeError, OSError) as exc:
            failures += 1
            LOGGER.error("Failed to import %s: %s", path, exc)
    return 1 if failures else 0


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if not args.check:
        upgrade_database()
    try:
        return asyncio.run(run(args))
    except MarmaladeError as exc:
        LOGGER.error("%s", exc.message)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
