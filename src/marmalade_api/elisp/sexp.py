"""Render Python values as Emacs Lisp s-expressions.

Native values map onto their natural Lisp counterparts (``None`` is ``nil``,
lists are lists, strings are strings). Where the same Python value has to be
written differently depending on context, wrap it in one of the tagged types
below: :class:`Symbol`, :class:`Keyword`, :class:`Vector` or :class:`Cons`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

_STRING_ESCAPE = re.compile(r'["\\]')
_SYMBOL_ESCAPE = re.compile(r"[#\"'()\[\]\\`\s]|^[0-9.]")


class Symbol(str):
    """A Lisp symbol. Compares equal to the plain string of its name."""

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"


class Keyword(str):
    """A Lisp keyword, written with a leading colon."""

    def __repr__(self) -> str:
        return f"Keyword({str.__repr__(self)})"


class Vector(tuple):
    """A Lisp vector, written in square brackets."""

    def __repr__(self) -> str:
        return f"Vector({tuple.__repr__(self)})"


@dataclass(frozen=True)
class Cons:
    """A dotted pair ``(car . cdr)``."""

    car: Any
    cdr: Any


class SexpConversionError(TypeError):
    def __init__(self, value: Any) -> None:
        super().__init__(f"Cannot convert to sexp: {value!r}")
        self.value = value


def string(value: str) -> str:
    return '"' + _STRING_ESCAPE.sub(lambda match: "\\" + match.group(0), value) + '"'


def symbol(value: str) -> str:
    return _SYMBOL_ESCAPE.sub(lambda match: "\\" + match.group(0), value)


def keyword(value: str) -> str:
    return ":" + symbol(value)


def _items(values: Iterable[Any]) -> str:
    return " ".join(serialize(value) for value in values)


def list_(values: Iterable[Any]) -> str:
    return "(" + _items(values) + ")"


def vector(values: Iterable[Any]) -> str:
    return "[" + _items(values) + "]"


def cons(pair: Cons) -> str:
    return f"({serialize(pair.car)} . {serialize(pair.cdr)})"


def boolean(value: bool) -> str:
    return "t" if value else "nil"


def number(value: int | float) -> str:
    return str(value)


def serialize(value: Any) -> str:
    """Convert ``value`` to its s-expression text."""

    if value is None:
        return "nil"
    if isinstance(value, Keyword):
        return keyword(value)
    if isinstance(value, Symbol):
        return symbol(value)
    if isinstance(value, str):
        return string(value)
    if isinstance(value, bool):
        return boolean(value)
    if isinstance(value, (int, float)):
        return number(value)
    if isinstance(value, Cons):
        return cons(value)
    if isinstance(value, Vector):
        return vector(value)
    if isinstance(value, (list, tuple)):
        return list_(value)
    raise SexpConversionError(value)


def alist(mapping: Mapping[str, Any]) -> list[Cons]:
    """Build an association list with symbol keys from a mapping.

    Nested mappings (and mappings inside lists) become nested alists.
    """

    return [Cons(Symbol(key), _alist_value(value)) for key, value in mapping.items()]


def _alist_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return alist(value)
    if isinstance(value, (list, tuple)) and not isinstance(value, Vector):
        return [_alist_value(item) for item in value]
    return value


def archive_entry(
    name: str,
    version: Sequence[int],
    requires: Sequence[tuple[str, Sequence[int]]],
    description: str | None,
    kind: str,
) -> Cons:
    """One ``archive-contents`` entry: ``(name . [version requires desc kind])``."""

    return Cons(
        Symbol(name),
        Vector(
            (
                list(version),
                [[Symbol(dep_name), list(dep_version)] for dep_name, dep_version in requires],
                description or "",
                Symbol(kind),
            )
        ),
    )


def archive_contents(entries: Iterable[Cons]) -> str:
    """Render a full ``archive-contents`` listing, format version 1."""

    return "(1" + "".join(" " + serialize(entry) for entry in entries) + ")"


__all__ = [
    "Symbol",
    "Keyword",
    "Vector",
    "Cons",
    "SexpConversionError",
    "serialize",
    "alist",
    "archive_entry",
    "archive_contents",
]
