"""tree-sitter-language-pack backend: bundled grammars resolved by name."""

from __future__ import annotations

import logging

import tree_sitter_language_pack as tslp
from tree_sitter import Node, Tree

from ..errors import NotAvailable, TreeHaverError
from ..library_path_utils import (
    derive_language_name_from_path,
    derive_language_name_from_symbol,
)

logger = logging.getLogger(__name__)


def available() -> bool:
    return callable(getattr(tslp, "get_parser", None))


def capabilities() -> dict:
    return {"queries": True, "bundled_grammars": True}


class Language:
    """Resolves bundled grammars; the parser receives the language name."""

    @classmethod
    def from_name(cls, name: str):
        try:
            return tslp.get_language(name)
        except (LookupError, tslp.Error) as err:
            raise NotAvailable(f"No bundled grammar for {name!r}: {err}") from err

    @classmethod
    def from_library(cls, path: str | None, symbol: str | None = None, name: str | None = None):
        # Bundled grammars are compiled into the pack; only the name matters.
        name = (
            name
            or derive_language_name_from_symbol(symbol)
            or derive_language_name_from_path(path)
        )
        if not name:
            raise NotAvailable(f"Cannot derive a language name from {path!r}")
        logger.debug("Resolving %s from the language pack (library %s not loaded)", name, path)
        return cls.from_name(name)


def _as_bytes(source: str | bytes) -> bytes:
    return source.encode("utf-8") if isinstance(source, str) else source


class Parser:
    def __init__(self):
        self._name: str | None = None
        self._parser = None

    @property
    def language(self) -> str | None:
        return self._name

    @language.setter
    def language(self, name: str) -> None:
        try:
            self._parser = tslp.get_parser(name)
        except (LookupError, tslp.Error) as err:
            raise NotAvailable(f"No bundled grammar for {name!r}: {err}") from err
        self._name = name

    def _require_parser(self):
        if self._parser is None:
            raise TreeHaverError("Language pack parser has no language set")
        return self._parser

    def parse(self, source: str | bytes) -> Tree:
        return self._require_parser().parse(_as_bytes(source))

    def parse_string(self, old_tree: Tree | None, source: str | bytes) -> Tree:
        if old_tree is None:
            return self.parse(source)
        return self._require_parser().parse(_as_bytes(source), old_tree)


__all__ = ["Language", "Node", "Parser", "Tree", "available", "capabilities"]
