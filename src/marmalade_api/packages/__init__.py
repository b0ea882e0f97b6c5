"""Package metadata extraction."""

from .parser import (
    get_headers,
    get_section,
    parse_declaration,
    parse_elisp,
    parse_elisp_file,
    parse_package,
    parse_requires,
    parse_tar,
    parse_tar_file,
)
from .unpack import unpack_tar

__all__ = [
    "get_headers",
    "get_section",
    "parse_declaration",
    "parse_elisp",
    "parse_elisp_file",
    "parse_package",
    "parse_requires",
    "parse_tar",
    "parse_tar_file",
    "unpack_tar",
]
