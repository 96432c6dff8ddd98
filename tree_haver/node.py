"""Node — one traversal API over every backend's native nodes.

Each accessor resolves the canonical name on the native node first, then the
alias table from :mod:`tree_haver.backend_api`; callables are invoked and
plain attributes read. Anything outside the unified surface goes through
:attr:`Node.inner_node` or :meth:`Node.delegate`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from .backend_api import resolve_alias
from .errors import NotAvailable, TreeHaverError
from .point import Point

logger = logging.getLogger(__name__)

_MISSING = object()


class Node:
    """A lightweight view over one native node.

    Equality is identity of the underlying native node; ordering is by
    ``(start_byte, end_byte, type)``. Two nodes with the same span and type
    from different trees therefore compare equal in order but not under ``==``.
    """

    __slots__ = ("_inner", "_source")

    def __init__(self, inner: Any, source: str | bytes | None = None):
        self._inner = inner
        self._source = source.encode("utf-8") if isinstance(source, str) else source

    @property
    def inner_node(self) -> Any:
        return self._inner

    @property
    def source(self) -> bytes | None:
        return self._source

    # ── resolution ───────────────────────────────────────────────

    def _lookup(self, method: str, *args: Any) -> Any:
        name = resolve_alias(self._inner, method)
        if name is None:
            return _MISSING
        value = getattr(self._inner, name)
        return value(*args) if callable(value) else value

    def _required(self, method: str) -> Any:
        value = self._lookup(method)
        if value is _MISSING:
            raise TreeHaverError(
                f"{type(self._inner).__name__} does not provide required node method {method!r}"
            )
        return value

    def _wrap(self, native: Any) -> Node | None:
        if native is _MISSING or native is None:
            return None
        return Node(native, self._source)

    # ── identity and span ────────────────────────────────────────

    @property
    def type(self) -> str:
        return str(self._required("type"))

    @property
    def start_byte(self) -> int:
        return int(self._required("start_byte"))

    @property
    def end_byte(self) -> int:
        return int(self._required("end_byte"))

    def _point(self, method: str, offset: int) -> Point:
        value = self._lookup(method)
        if value is not _MISSING and value is not None:
            return Point.coerce(value)
        if self._source is None:
            raise TreeHaverError(f"Cannot compute {method}: no native position and no source text")
        return Point.from_byte_offset(self._source, offset)

    @property
    def start_point(self) -> Point:
        return self._point("start_point", self.start_byte)

    @property
    def end_point(self) -> Point:
        return self._point("end_point", self.end_byte)

    @property
    def text(self) -> str:
        value = self._lookup("text")
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        if isinstance(value, str):
            return value
        if self._source is None:
            raise TreeHaverError("Cannot extract text: node has no native text and no source text")
        return self._source[self.start_byte : self.end_byte].decode("utf-8", errors="replace")

    # ── flags ────────────────────────────────────────────────────

    def _flag(self, method: str, default: bool) -> bool:
        value = self._lookup(method)
        return default if value is _MISSING else bool(value)

    @property
    def has_error(self) -> bool:
        return self._flag("has_error", False)

    @property
    def is_missing(self) -> bool:
        return self._flag("is_missing", False)

    @property
    def is_named(self) -> bool:
        return self._flag("is_named", True)

    @property
    def is_error(self) -> bool:
        return self.type == "ERROR"

    # ── relatives ────────────────────────────────────────────────

    @property
    def child_count(self) -> int:
        return int(self._required("child_count"))

    def child(self, index: int) -> Node | None:
        if index < 0 or index >= self.child_count:
            return None
        return self._wrap(self._lookup("child", index))

    @property
    def children(self) -> list[Node]:
        nodes = (self.child(i) for i in range(self.child_count))
        return [node for node in nodes if node is not None]

    @property
    def named_children(self) -> list[Node]:
        return [node for node in self.children if node.is_named]

    @property
    def parent(self) -> Node | None:
        return self._wrap(self._lookup("parent"))

    @property
    def next_sibling(self) -> Node | None:
        return self._wrap(self._lookup("next_sibling"))

    @property
    def prev_sibling(self) -> Node | None:
        return self._wrap(self._lookup("prev_sibling"))

    def child_by_field_name(self, name: str) -> Node | None:
        return self._wrap(self._lookup("child_by_field_name", name))

    field = child_by_field_name

    def __iter__(self) -> Iterator[Node]:
        return iter(self.children)

    # ── escape hatch ─────────────────────────────────────────────

    def delegate(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Call (or read) *name* on the native node; not portable across backends."""
        try:
            value = getattr(self._inner, name)
        except AttributeError as err:
            raise NotAvailable(f"{type(self._inner).__name__} has no attribute {name!r}") from err
        if callable(value):
            return value(*args, **kwargs)
        return value

    # ── comparison ───────────────────────────────────────────────

    def sort_key(self) -> tuple[int, int, str]:
        return (self.start_byte, self.end_byte, self.type)

    def compare(self, other: Node) -> int:
        """Three-way comparison by span then type: -1, 0 or 1."""
        mine, theirs = self.sort_key(), other.sort_key()
        return (mine > theirs) - (mine < theirs)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.compare(other) < 0

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.compare(other) <= 0

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.compare(other) > 0

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.compare(other) >= 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self._inner == other._inner

    def __hash__(self) -> int:
        return hash(self.sort_key())

    def __repr__(self) -> str:
        return f"Node(type={self.type!r}, start_byte={self.start_byte}, end_byte={self.end_byte})"
