"""Reading and writing the Emacs Lisp data used by package metadata."""

from .sexp import Cons, Keyword, SexpConversionError, Symbol, Vector, alist, serialize
from .sexp_parser import Parser, parse

__all__ = [
    "Cons",
    "Keyword",
    "Symbol",
    "Vector",
    "SexpConversionError",
    "alist",
    "serialize",
    "Parser",
    "parse",
]
