"""Parser for the subset of Emacs Lisp that package metadata is written in.

Only what Emacs itself emits for package declarations is supported: lists,
symbols, strings and decimal numbers. Lists become Python lists, symbols
become :class:`~marmalade_api.elisp.sexp.Symbol`, strings become ``str`` and
numbers become ``float``. A number token must contain a decimal point
(``1.5``, ``.5``); bare integers are not part of the grammar.

Parsing stops after one complete expression. Anything after it is left in
:attr:`Parser.remaining` for callers that care about trailing input.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from marmalade_api.errors import SexpSyntaxError
from .sexp import Symbol

_WHITESPACE = re.compile(r"\s+")
_COMMENT = re.compile(r";[^\n]*")
_OPEN = re.compile(r"\(")
_CLOSE = re.compile(r"\)")
_NUMBER = re.compile(r"[0-9]*\.[0-9]+")
_SYMBOL = re.compile(r"(?:[^0-9.#\"'()\[\]\\`\s]|\\.)(?:[^#\"'()\[\]\\`\s]|\\.)*", re.DOTALL)
_STRING = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)
_ESCAPE = re.compile(r"\\(.)", re.DOTALL)

_NO_MATCH = object()


def _unescape_symbol(token: str) -> str:
    return _ESCAPE.sub(lambda match: match.group(1), token)


def _unescape_string(body: str) -> str:
    # A backslash before a space or newline is a line continuation.
    return _ESCAPE.sub(
        lambda match: "" if match.group(1) in " \n" else match.group(1),
        body,
    )


class Parser:
    """Recursive-descent parser holding its cursor into the source text."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    @property
    def remaining(self) -> str:
        return self._text[self._pos :]

    def parse(self) -> Any:
        """Parse one expression, skipping any leading whitespace and comments."""

        self._skip_whitespace()
        value = self._expression()
        if value is _NO_MATCH:
            raise SexpSyntaxError("an expression", self.remaining)
        return value

    def at_end(self) -> bool:
        """True when only whitespace and comments are left."""

        self._skip_whitespace()
        return self._pos >= len(self._text)

    def _token(self, pattern: re.Pattern[str]) -> Optional[re.Match[str]]:
        match = pattern.match(self._text, self._pos)
        if match is None:
            return None
        self._pos = match.end()
        return match

    def _require(self, pattern: re.Pattern[str], expected: str) -> re.Match[str]:
        match = self._token(pattern)
        if match is None:
            raise SexpSyntaxError(expected, self.remaining)
        return match

    def _skip_whitespace(self) -> None:
        while self._token(_WHITESPACE) or self._token(_COMMENT):
            pass

    def _expression(self) -> Any:
        for rule in (self._list, self._number, self._symbol, self._string):
            value = rule()
            if value is not _NO_MATCH:
                return value
        return _NO_MATCH

    def _list(self) -> Any:
        if not self._token(_OPEN):
            return _NO_MATCH
        self._skip_whitespace()
        values: list[Any] = []
        while True:
            value = self._expression()
            if value is _NO_MATCH:
                break
            values.append(value)
            self._skip_whitespace()
        self._require(_CLOSE, "')'")
        return values

    def _number(self) -> Any:
        match = self._token(_NUMBER)
        if match is None:
            return _NO_MATCH
        return float(match.group(0))

    def _symbol(self) -> Any:
        match = self._token(_SYMBOL)
        if match is None:
            return _NO_MATCH
        return Symbol(_unescape_symbol(match.group(0)))

    def _string(self) -> Any:
        match = self._token(_STRING)
        if match is None:
            return _NO_MATCH
        return _unescape_string(match.group(1))


def parse(text: str) -> Any:
    """Parse the first s-expression in ``text``."""

    return Parser(text).parse()


__all__ = ["Parser", "parse"]
