"""Unified Parse Tree."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from .errors import NotAvailable
from .node import Node
from .point import Point

logger = logging.getLogger(__name__)


class Tree:
    """Wraps a backend's native tree.

    The source is kept so node text can be sliced from it when a backend has
    no native text accessor.
    """

    def __init__(self, inner: Any, source: str | bytes, backend: str | None = None):
        self._inner = inner
        self._source = source
        self._source_bytes = source.encode("utf-8") if isinstance(source, str) else source
        self.backend = backend

    @property
    def inner_tree(self) -> Any:
        return self._inner

    @property
    def source(self) -> str | bytes:
        return self._source

    @property
    def root_node(self) -> Node | None:
        root = getattr(self._inner, "root_node", None)
        if callable(root):
            root = root()
        if root is None:
            return None
        return Node(root, self._source_bytes)

    @property
    def supports_editing(self) -> bool:
        return callable(getattr(self._inner, "edit", None))

    def edit(
        self,
        start_byte: int,
        old_end_byte: int,
        new_end_byte: int,
        start_point,
        old_end_point,
        new_end_point,
    ) -> None:
        """Tell the native tree about a source edit before an incremental reparse.

        Points may be Points, ``(row, column)`` tuples or ``{"row", "column"}``
        mappings.

        Raises:
            NotAvailable: The backend's trees cannot be edited.
        """
        if not self.supports_editing:
            raise NotAvailable(
                f"Incremental parsing not supported by the {self.backend or 'current'} backend"
            )
        self._inner.edit(
            start_byte=start_byte,
            old_end_byte=old_end_byte,
            new_end_byte=new_end_byte,
            start_point=tuple(Point.coerce(start_point)),
            old_end_point=tuple(Point.coerce(old_end_point)),
            new_end_point=tuple(Point.coerce(new_end_point)),
        )

    @property
    def has_error(self) -> bool:
        """True if any node in the tree is an ERROR node or a missing node."""
        root = self.root_node
        if root is None:
            return False
        queue = deque([root])
        while queue:
            node = queue.popleft()
            if node.is_error or node.is_missing:
                return True
            queue.extend(node.children)
        return False

    def delegate(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Call (or read) *name* on the native tree; not portable across backends."""
        try:
            value = getattr(self._inner, name)
        except AttributeError as err:
            raise NotAvailable(f"{type(self._inner).__name__} has no attribute {name!r}") from err
        if callable(value):
            return value(*args, **kwargs)
        return value

    def __repr__(self) -> str:
        return f"Tree(backend={self.backend!r}, root={self.root_node!r})"
