"""Lark backend: in-process grammars built with the ``lark`` parsing toolkit.

The grammar reference is a ``lark.Lark`` instance (or any object with a
``parse(text)`` method returning lark trees). Build it with
``propagate_positions=True`` so rule nodes carry source spans; without it,
spans are inferred from the tokens beneath each rule.
"""

from __future__ import annotations

import logging
from typing import Any

from lark import Token
from lark import Tree as LarkTree
from lark.exceptions import LarkError

from ..errors import ConfigurationError, NotAvailable, TreeHaverError
from ..point import Point

logger = logging.getLogger(__name__)


def available() -> bool:
    return True


def capabilities() -> dict:
    return {"queries": False, "pure_python": True}


class Language:
    def __init__(self, grammar: Any, name: str | None = None):
        self.grammar = grammar
        self.name = name

    @classmethod
    def from_grammar(cls, grammar: Any, name: str | None = None) -> Language:
        if not callable(getattr(grammar, "parse", None)):
            raise ConfigurationError(f"Lark grammar must expose parse(), got {type(grammar).__name__}")
        return cls(grammar, name)

    @classmethod
    def from_library(cls, path: str, symbol: str | None = None, name: str | None = None):
        raise NotAvailable(f"Lark grammars are in-process objects; cannot load {path!r}")


class Parser:
    def __init__(self):
        self._grammar = None

    @property
    def language(self):
        return self._grammar

    @language.setter
    def language(self, grammar) -> None:
        self._grammar = grammar.grammar if isinstance(grammar, Language) else grammar

    def parse(self, source: str | bytes) -> Tree:
        if self._grammar is None:
            raise TreeHaverError("Lark parser has no grammar set")
        text = source.decode("utf-8") if isinstance(source, bytes) else source
        try:
            native = self._grammar.parse(text)
        except LarkError as err:
            raise TreeHaverError(f"Lark parse failed: {err}") from err
        return Tree(native, text)


class Tree:
    """A parse result plus the text it came from; lark trees cannot be edited."""

    def __init__(self, native: LarkTree | Token, text: str):
        self.native = native
        self.text = text
        self.source = text.encode("utf-8")
        self._ascii = text.isascii()

    @property
    def root_node(self) -> Node:
        return Node(self, self.native)

    def byte_offset(self, char_offset: int) -> int:
        if self._ascii:
            return char_offset
        return len(self.text[:char_offset].encode("utf-8"))


def _children(item: LarkTree | Token) -> list:
    if isinstance(item, LarkTree):
        # [optional] rules leave None placeholders
        return [child for child in item.children if child is not None]
    return []


def _char_span(item: LarkTree | Token) -> tuple[int, int] | None:
    if isinstance(item, Token):
        if item.start_pos is None or item.end_pos is None:
            return None
        return item.start_pos, item.end_pos
    meta = item.meta
    if not getattr(meta, "empty", True):
        return meta.start_pos, meta.end_pos
    spans = [span for span in (_char_span(child) for child in _children(item)) if span]
    if not spans:
        return None
    return spans[0][0], spans[-1][1]


class Node:
    """One lark tree or token, with its position among its siblings."""

    def __init__(self, tree: Tree, item: LarkTree | Token, parent: Node | None = None, index: int = 0):
        self._tree = tree
        self._item = item
        self._parent = parent
        self._index = index
        self._span = _char_span(item) or (0, 0)

    @property
    def kind(self) -> str:
        if isinstance(self._item, Token):
            return self._item.type
        return str(self._item.data)

    @property
    def start_byte(self) -> int:
        return self._tree.byte_offset(self._span[0])

    @property
    def end_byte(self) -> int:
        return self._tree.byte_offset(self._span[1])

    @property
    def start_position(self) -> Point:
        return Point.from_byte_offset(self._tree.source, self.start_byte)

    @property
    def end_position(self) -> Point:
        return Point.from_byte_offset(self._tree.source, self.end_byte)

    @property
    def text(self) -> str:
        if isinstance(self._item, Token):
            return str(self._item)
        return self._tree.text[self._span[0] : self._span[1]]

    @property
    def child_count(self) -> int:
        return len(_children(self._item))

    def child(self, index: int) -> Node | None:
        children = _children(self._item)
        if index < 0 or index >= len(children):
            return None
        return Node(self._tree, children[index], self, index)

    @property
    def parent(self) -> Node | None:
        return self._parent

    @property
    def next_sibling(self) -> Node | None:
        return self._parent.child(self._index + 1) if self._parent else None

    @property
    def prev_sibling(self) -> Node | None:
        if self._parent is None or self._index == 0:
            return None
        return self._parent.child(self._index - 1)

    @property
    def is_named(self) -> bool:
        if isinstance(self._item, LarkTree):
            return True
        # anonymous terminals are named __ANON_n
        return not self._item.type.startswith("__")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self._item is other._item

    def __hash__(self) -> int:
        return id(self._item)

    def __repr__(self) -> str:
        return f"<lark Node {self.kind} [{self.start_byte}, {self.end_byte})>"


__all__ = ["Language", "Node", "Parser", "Tree", "available", "capabilities"]
