"""Extract package metadata from uploaded Emacs Lisp packages.

Two encodings are supported:

* single-file packages, whose metadata lives in the comment header block
  between ``;;; foo.el --- description`` and ``;;; foo.el ends here``;
* tar packages, a single ``foo-1.2`` directory whose ``foo-pkg.el`` holds a
  ``(define-package ...)`` call.

Version parsing, ``Package-Requires`` pair parsing and header scanning are
shared by both paths.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional

from marmalade_api.domain.models import (
    PackageKind,
    PackageVersion,
    Requirement,
    format_version,
    parse_version,
)
from marmalade_api.elisp.sexp import Symbol
from marmalade_api.elisp.sexp_parser import parse as parse_sexp
from marmalade_api.errors import PackageSyntaxError
from .unpack import ArchiveSource, Unpacker, unpack_tar

LOGGER = logging.getLogger(__name__)

_HEADER = re.compile(
    r"^;;+[ \t]+(?:@\(#\))?[ \t]*\$?([a-z\-]+)[ \t]*:[ \t]+(.*)",
    re.IGNORECASE | re.MULTILINE,
)
_START = re.compile(r"^;;; ([^ ]*)\.el --- (.*)$", re.MULTILINE)
_RCS_REVISION = re.compile(r"^[ \t]*\$Revision:[ \t]([0-9.]+)[ \t]*\$$")
_COMMENTARY = "commentary|documentation"
_ARCHIVE_DIR = re.compile(r"^(.+)-([0-9.]+)$")
_DEFINE_PACKAGE = "define-package"


def get_headers(elisp: str) -> dict[str, str]:
    """Collect ``;; Header: value`` lines, keyed by lower-cased header name.

    The first occurrence of a header wins; headers with an empty value are
    skipped.
    """

    headers: dict[str, str] = {}
    for match in _HEADER.finditer(elisp):
        name = match.group(1).lower()
        value = match.group(2).strip()
        if value and name not in headers:
            headers[name] = value
    return headers


def get_section(elisp: str, name_pattern: str) -> Optional[str]:
    """Return the body of a ``;;; Name:`` section with comment markers stripped.

    The section runs until the next section header at the same or a shallower
    depth, or the first line of code.
    """

    start = re.search(
        rf"^(;{{3}};*) ({name_pattern})[ \t]*:",
        elisp,
        re.IGNORECASE | re.MULTILINE,
    )
    if start is None:
        return None
    body = elisp[start.end() :]
    level = len(start.group(1))
    end = re.search(rf"^(;{{3,{level}}} .*:|\s*[^;\s])", body, re.MULTILINE)
    if end is None:
        raise PackageSyntaxError(f"Unterminated section: {start.group(2)}")
    return re.sub(r"\n;+ ?", "\n", body[: end.start()]).strip()


def strip_rcs(value: str) -> str:
    """Reduce ``$Revision: 1.2 $`` to ``1.2``."""

    match = _RCS_REVISION.match(value)
    return match.group(1) if match else value


def _as_list(value: Any, what: str) -> list[Any]:
    if isinstance(value, Symbol) and value == "nil":
        return []
    if not isinstance(value, list):
        raise PackageSyntaxError(f"Expected {value!r} to be a list ({what})")
    return value


def _parse_version_value(value: Any) -> tuple[int, ...]:
    if not isinstance(value, str) or isinstance(value, Symbol):
        raise PackageSyntaxError(f"Expected version {value!r} to be a string")
    return parse_version(value)


def _parse_requirement(item: Any) -> Requirement:
    pair = _as_list(item, "requirement")
    if len(pair) != 2 or not isinstance(pair[0], str):
        raise PackageSyntaxError(
            f"Expected requirement {item!r} to be a (name \"version\") pair"
        )
    return str(pair[0]), _parse_version_value(pair[1])


def parse_requires(value: Optional[str]) -> list[Requirement]:
    """Parse a ``Package-Requires`` header value."""

    if not value:
        return []
    return [
        _parse_requirement(item)
        for item in _as_list(parse_sexp(value), "Package-Requires")
    ]


def parse_elisp(elisp: str) -> PackageVersion:
    """Parse a single-file package."""

    start = _START.search(elisp)
    if start is None:
        raise PackageSyntaxError("No starting comment for package")
    filename, description = start.group(1), start.group(2)

    end = re.compile(
        r"^(\(provide[^)]+\) +)?;;; " + re.escape(filename) + r"\.el ends here",
        re.MULTILINE,
    ).search(elisp, start.start())
    if end is None:
        raise PackageSyntaxError("No closing comment for package")

    elisp = elisp[start.start() : end.end()]
    headers = get_headers(elisp)
    version = headers.get("package-version") or headers.get("version")
    if not version:
        raise PackageSyntaxError(
            'Package does not have a "Version" or "Package-Version" header'
        )
    commentary = get_section(elisp, _COMMENTARY)

    return PackageVersion(
        name=filename,
        description=description,
        commentary=commentary,
        headers=headers,
        requires=parse_requires(headers.get("package-requires")),
        version=parse_version(strip_rcs(version)),
        kind=PackageKind.SINGLE,
    )


def parse_declaration(elisp: str) -> PackageVersion:
    """Parse the ``(define-package NAME VERSION DESC REQUIRES)`` call of a tar package.

    Nothing is evaluated, so only literal arguments are understood.
    """

    sexp = _as_list(parse_sexp(elisp), "define-package call")
    if not sexp or not isinstance(sexp[0], Symbol) or sexp[0] != _DEFINE_PACKAGE:
        raise PackageSyntaxError("Expected a call to define-package")
    if len(sexp) < 3 or not isinstance(sexp[1], str):
        raise PackageSyntaxError("define-package needs a name and a version")

    name = str(sexp[1])
    version = _parse_version_value(sexp[2])
    description = sexp[3] if len(sexp) > 3 else None
    if isinstance(description, Symbol) or not isinstance(description, str):
        description = None

    requires: list[Requirement] = []
    quoted = sexp[4] if len(sexp) > 4 else None
    if quoted is not None and quoted != [] and quoted != "nil":
        if not isinstance(quoted, list) or len(quoted) != 2 or quoted[0] != "quote":
            raise PackageSyntaxError("Requires must be quoted")
        requires = [
            _parse_requirement(item) for item in _as_list(quoted[1], "requirements")
        ]

    return PackageVersion(
        name=name,
        description=description,
        requires=requires,
        version=version,
        kind=PackageKind.TAR,
    )


def _read_optional(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None


def _parse_unpacked(root: Path) -> PackageVersion:
    entries = list(root.iterdir())
    match = _ARCHIVE_DIR.match(entries[0].name) if len(entries) == 1 else None
    if match is None or not entries[0].is_dir():
        raise PackageSyntaxError(
            "ELPA archives must contain exactly one directory, named <package>-<version>"
        )
    package_dir = entries[0]
    name = match.group(1)
    version = parse_version(match.group(2))

    declaration = _read_optional(package_dir / f"{name}-pkg.el")
    if declaration is None:
        raise PackageSyntaxError(f"Archive does not contain {name}-pkg.el")
    package = parse_declaration(declaration)

    if package.name != name:
        raise PackageSyntaxError(
            f'Package name "{package.name}" in {name}-pkg.el doesn\'t match '
            f'archive name "{name}"!'
        )
    if package.version != version:
        raise PackageSyntaxError(
            f'Package version "{format_version(package.version)}" in {name}-pkg.el '
            f'doesn\'t match archive version "{format_version(version)}"!'
        )

    main_file = _read_optional(package_dir / f"{name}.el")
    package.headers = get_headers(main_file) if main_file is not None else {}
    package.commentary = _read_optional(package_dir / "README")
    return package


def _remove_scratch_dir(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except OSError as exc:
        LOGGER.warning("Failed to remove scratch directory %s: %s", path, exc)


async def parse_tar(source: ArchiveSource, *, unpack: Unpacker = unpack_tar) -> PackageVersion:
    """Parse a tar package given its bytes or its path on disk."""

    scratch = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="marmalade."))
    try:
        await asyncio.to_thread(unpack, source, scratch)
        return await asyncio.to_thread(_parse_unpacked, scratch)
    finally:
        await asyncio.to_thread(_remove_scratch_dir, scratch)


async def parse_package(data: bytes, kind: PackageKind) -> PackageVersion:
    """Parse a package of either kind from its raw bytes."""

    if kind is PackageKind.SINGLE:
        return parse_elisp(data.decode("utf-8", errors="replace"))
    return await parse_tar(data)


async def parse_elisp_file(path: Path) -> PackageVersion:
    elisp = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
    return parse_elisp(elisp)


async def parse_tar_file(path: Path) -> PackageVersion:
    return await parse_tar(path)


__all__ = [
    "get_headers",
    "get_section",
    "strip_rcs",
    "parse_requires",
    "parse_elisp",
    "parse_declaration",
    "parse_tar",
    "parse_package",
    "parse_elisp_file",
    "parse_tar_file",
]
