"""py-tree-sitter backend: grammar shared libraries bound to ``tree_sitter``.

A grammar library exports one function, ``tree_sitter_<lang>()``, returning a
``const TSLanguage *``. The pointer is wrapped in a PyCapsule named
``tree_sitter.Language``, which is what ``tree_sitter.Language`` accepts.
"""

from __future__ import annotations

import ctypes
import logging
import threading

import tree_sitter
from tree_sitter import Node, Tree

from ..errors import NotAvailable
from ..library_path_utils import derive_symbol_from_path

logger = logging.getLogger(__name__)

_CAPSULE_NAME = b"tree_sitter.Language"

# Loaded grammar libraries must stay mapped for as long as any Language uses them
_LIBRARIES: dict[str, ctypes.CDLL] = {}
_LIBRARIES_LOCK = threading.Lock()


def available() -> bool:
    return hasattr(tree_sitter, "Language") and hasattr(tree_sitter, "Parser")


def capabilities() -> dict:
    return {"queries": True, "bytes_text": True}


def _open_library(path: str) -> ctypes.CDLL:
    with _LIBRARIES_LOCK:
        lib = _LIBRARIES.get(path)
        if lib is None:
            lib = ctypes.CDLL(path)
            _LIBRARIES[path] = lib
        return lib


def _language_capsule(pointer: int):
    new_capsule = ctypes.pythonapi.PyCapsule_New
    new_capsule.restype = ctypes.py_object
    new_capsule.argtypes = (ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p)
    return new_capsule(pointer, _CAPSULE_NAME, None)


class Language:
    """Factory for ``tree_sitter.Language`` objects."""

    @classmethod
    def from_library(cls, path: str, symbol: str | None = None, name: str | None = None):
        symbol = symbol or derive_symbol_from_path(path)
        if not symbol:
            raise NotAvailable(f"Cannot derive a language symbol from {path!r}")
        lib = _open_library(path)
        language_fn = getattr(lib, symbol)
        language_fn.restype = ctypes.c_void_p
        pointer = language_fn()
        if not pointer:
            raise NotAvailable(f"{symbol}() in {path} returned NULL")
        logger.debug("Loaded %s from %s", symbol, path)
        return tree_sitter.Language(_language_capsule(pointer))


def _as_bytes(source: str | bytes) -> bytes:
    return source.encode("utf-8") if isinstance(source, str) else source


class Parser:
    """Wraps ``tree_sitter.Parser`` to accept text as well as bytes."""

    def __init__(self):
        self._parser = tree_sitter.Parser()

    @property
    def language(self):
        return self._parser.language

    @language.setter
    def language(self, value) -> None:
        self._parser.language = value

    def parse(self, source: str | bytes) -> Tree:
        return self._parser.parse(_as_bytes(source))

    def parse_string(self, old_tree: Tree | None, source: str | bytes) -> Tree:
        if old_tree is None:
            return self.parse(source)
        return self._parser.parse(_as_bytes(source), old_tree)


__all__ = [
    "Language",
    "Node",
    "Parser",
    "Tree",
    "available",
    "capabilities",
]
