"""ctypes backend: drives the tree-sitter C runtime (``libtree-sitter``) directly.

Useful where py-tree-sitter wheels are unavailable but the system ships the C
library. This backend covers full parses and traversal only: it has no
incremental reparse, no tree editing and no field-name lookup.

The runtime library is located through ``TREE_SITTER_RUNTIME_LIB``, then
``ctypes.util.find_library("tree-sitter")``, then a few well-known sonames.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import threading

from .. import constants
from ..errors import NotAvailable, TreeHaverError
from ..library_path_utils import derive_symbol_from_path
from ..point import Point

logger = logging.getLogger(__name__)


class TSPoint(ctypes.Structure):
    _fields_ = [("row", ctypes.c_uint32), ("column", ctypes.c_uint32)]


class TSNode(ctypes.Structure):
    _fields_ = [
        ("context", ctypes.c_uint32 * 4),
        ("id", ctypes.c_void_p),
        ("tree", ctypes.c_void_p),
    ]


# name → (restype, argtypes)
_SIGNATURES: dict[str, tuple] = {
    "ts_parser_new": (ctypes.c_void_p, ()),
    "ts_parser_delete": (None, (ctypes.c_void_p,)),
    "ts_parser_set_language": (ctypes.c_bool, (ctypes.c_void_p, ctypes.c_void_p)),
    "ts_parser_parse_string": (
        ctypes.c_void_p,
        (ctypes.c_void_p, ctypes.c_void_p, ctypes.c_char_p, ctypes.c_uint32),
    ),
    "ts_tree_delete": (None, (ctypes.c_void_p,)),
    "ts_tree_root_node": (TSNode, (ctypes.c_void_p,)),
    "ts_node_type": (ctypes.c_char_p, (TSNode,)),
    "ts_node_start_byte": (ctypes.c_uint32, (TSNode,)),
    "ts_node_end_byte": (ctypes.c_uint32, (TSNode,)),
    "ts_node_start_point": (TSPoint, (TSNode,)),
    "ts_node_end_point": (TSPoint, (TSNode,)),
    "ts_node_child_count": (ctypes.c_uint32, (TSNode,)),
    "ts_node_child": (TSNode, (TSNode, ctypes.c_uint32)),
    "ts_node_parent": (TSNode, (TSNode,)),
    "ts_node_next_sibling": (TSNode, (TSNode,)),
    "ts_node_prev_sibling": (TSNode, (TSNode,)),
    "ts_node_is_null": (ctypes.c_bool, (TSNode,)),
    "ts_node_is_named": (ctypes.c_bool, (TSNode,)),
    "ts_node_is_missing": (ctypes.c_bool, (TSNode,)),
    "ts_node_has_error": (ctypes.c_bool, (TSNode,)),
}

_runtime: ctypes.CDLL | None = None
_runtime_lock = threading.Lock()


def _runtime_candidates() -> list[str]:
    candidates = []
    override = os.environ.get(constants.ENV_RUNTIME_LIB)
    if override:
        candidates.append(override)
    found = ctypes.util.find_library("tree-sitter")
    if found:
        candidates.append(found)
    candidates.extend(constants.RUNTIME_LIBRARY_CANDIDATES)
    return list(dict.fromkeys(candidates))


def _bind(lib: ctypes.CDLL) -> ctypes.CDLL:
    for name, (restype, argtypes) in _SIGNATURES.items():
        fn = getattr(lib, name)
        fn.restype = restype
        fn.argtypes = argtypes
    return lib


def runtime_library() -> ctypes.CDLL:
    """Load and bind ``libtree-sitter`` once per process.

    Raises:
        NotAvailable: No candidate library could be loaded and bound.
    """
    global _runtime
    with _runtime_lock:
        if _runtime is not None:
            return _runtime
        errors = []
        for candidate in _runtime_candidates():
            try:
                _runtime = _bind(ctypes.CDLL(candidate))
            except (OSError, AttributeError) as err:
                errors.append(f"{candidate}: {err}")
                continue
            logger.debug("Loaded tree-sitter runtime from %s", candidate)
            return _runtime
    raise NotAvailable(
        "tree-sitter runtime library not found; set "
        f"{constants.ENV_RUNTIME_LIB}. Tried: {'; '.join(errors)}"
    )


def available() -> bool:
    try:
        runtime_library()
    except NotAvailable as err:
        logger.debug("ctypes backend unavailable: %s", err)
        return False
    return True


def capabilities() -> dict:
    return {"queries": False, "system_runtime": True}


# ── Language ─────────────────────────────────────────────────────


class Language:
    """A ``TSLanguage *`` together with the library that owns it."""

    def __init__(self, pointer: int, library: ctypes.CDLL, name: str | None = None):
        self.pointer = pointer
        self.name = name
        self._library = library

    @classmethod
    def from_library(cls, path: str, symbol: str | None = None, name: str | None = None) -> Language:
        runtime_library()
        symbol = symbol or derive_symbol_from_path(path)
        if not symbol:
            raise NotAvailable(f"Cannot derive a language symbol from {path!r}")
        library = ctypes.CDLL(path)
        language_fn = getattr(library, symbol)
        language_fn.restype = ctypes.c_void_p
        pointer = language_fn()
        if not pointer:
            raise NotAvailable(f"{symbol}() in {path} returned NULL")
        return cls(pointer, library, name)

    def __repr__(self) -> str:
        return f"<ctypes Language {self.name or '?'} at {self.pointer:#x}>"


# ── Parser / Tree / Node ─────────────────────────────────────────


class Parser:
    """Expects the LanguageHandle itself; reads the native pointer from it."""

    def __init__(self):
        self._lib = runtime_library()
        self._pointer = self._lib.ts_parser_new()
        self._language = None

    @property
    def language(self):
        return self._language

    @language.setter
    def language(self, handle) -> None:
        language = getattr(handle, "inner", handle)
        if not isinstance(language, Language):
            raise TreeHaverError(f"ctypes parser needs a ctypes Language, got {type(language).__name__}")
        if not self._lib.ts_parser_set_language(self._pointer, language.pointer):
            raise TreeHaverError(
                f"Language {language.name or '?'} is incompatible with the loaded tree-sitter runtime"
            )
        self._language = handle

    def parse(self, source: str | bytes) -> Tree:
        if self._language is None:
            raise TreeHaverError("ctypes parser has no language set")
        data = source.encode("utf-8") if isinstance(source, str) else source
        tree_pointer = self._lib.ts_parser_parse_string(self._pointer, None, data, len(data))
        if not tree_pointer:
            raise TreeHaverError("tree-sitter returned no tree (parse cancelled or timed out)")
        return Tree(self._lib, tree_pointer, data)

    def __del__(self):
        pointer = getattr(self, "_pointer", None)
        if pointer:
            self._lib.ts_parser_delete(pointer)
            self._pointer = None


class Tree:
    def __init__(self, lib: ctypes.CDLL, pointer: int, source: bytes):
        self._lib = lib
        self._pointer = pointer
        self.source = source

    @property
    def root_node(self) -> Node | None:
        raw = self._lib.ts_tree_root_node(self._pointer)
        if self._lib.ts_node_is_null(raw):
            return None
        return Node(self, raw)

    def __del__(self):
        pointer = getattr(self, "_pointer", None)
        if pointer:
            self._lib.ts_tree_delete(pointer)
            self._pointer = None


class Node:
    """A ``TSNode`` value; keeps its tree alive.

    Uses the C API's vocabulary (``kind``, ``start_position``) rather than the
    unified names; the unification layer maps between them.
    """

    def __init__(self, tree: Tree, raw: TSNode):
        self._tree = tree
        self._raw = raw

    @property
    def _lib(self) -> ctypes.CDLL:
        return self._tree._lib

    def _wrap(self, raw: TSNode) -> Node | None:
        if self._lib.ts_node_is_null(raw):
            return None
        return Node(self._tree, raw)

    @property
    def kind(self) -> str:
        return self._lib.ts_node_type(self._raw).decode("utf-8")

    @property
    def start_byte(self) -> int:
        return self._lib.ts_node_start_byte(self._raw)

    @property
    def end_byte(self) -> int:
        return self._lib.ts_node_end_byte(self._raw)

    @property
    def start_position(self) -> Point:
        point = self._lib.ts_node_start_point(self._raw)
        return Point(point.row, point.column)

    @property
    def end_position(self) -> Point:
        point = self._lib.ts_node_end_point(self._raw)
        return Point(point.row, point.column)

    @property
    def child_count(self) -> int:
        return self._lib.ts_node_child_count(self._raw)

    def child(self, index: int) -> Node | None:
        if index < 0 or index >= self.child_count:
            return None
        return self._wrap(self._lib.ts_node_child(self._raw, index))

    def parent(self) -> Node | None:
        return self._wrap(self._lib.ts_node_parent(self._raw))

    def next_sibling(self) -> Node | None:
        return self._wrap(self._lib.ts_node_next_sibling(self._raw))

    def previous_sibling(self) -> Node | None:
        return self._wrap(self._lib.ts_node_prev_sibling(self._raw))

    def is_named(self) -> bool:
        return bool(self._lib.ts_node_is_named(self._raw))

    def is_missing(self) -> bool:
        return bool(self._lib.ts_node_is_missing(self._raw))

    def has_error(self) -> bool:
        return bool(self._lib.ts_node_has_error(self._raw))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self._raw.id == other._raw.id and self._raw.tree == other._raw.tree

    def __hash__(self) -> int:
        return hash((self._raw.id, self._raw.tree))

    def __repr__(self) -> str:
        return f"<ctypes Node {self.kind} [{self.start_byte}, {self.end_byte})>"


__all__ = [
    "Language",
    "Node",
    "Parser",
    "Tree",
    "available",
    "capabilities",
    "runtime_library",
]
