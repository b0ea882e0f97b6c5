"""Marmalade: an Emacs Lisp package archive server."""

__version__ = "0.1.0"
