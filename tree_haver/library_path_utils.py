"""Pure functions deriving grammar symbols and language names from file names."""

from __future__ import annotations

import os
import re

from . import constants

_VERSIONED_SUFFIX_RE = re.compile(r"\.(so|dylib|dll)(\.\d+)*\Z")
_PREFIXED_RE = re.compile(r"\A(?:lib)?[-_]?tree[-_]sitter[-_](.+)\Z")


def derive_symbol_from_path(path: str | None) -> str | None:
    """Map a grammar library file name to its exported language symbol.

    ``libtree-sitter-toml.so``, ``libtree_sitter_toml.so.0.24``,
    ``tree-sitter-toml.dylib`` and ``libtoml.so`` all map to
    ``tree_sitter_toml``.
    """
    if not path:
        return None
    basename = os.path.basename(path)
    filename = _VERSIONED_SUFFIX_RE.sub("", basename)
    if filename == basename:
        filename = os.path.splitext(basename)[0]
    if not filename:
        return None
    match = _PREFIXED_RE.match(filename)
    if match:
        lang = match.group(1)
    else:
        lang = filename[3:] if filename.startswith("lib") else filename
    lang = lang.replace("-", "_")
    return f"{constants.SYMBOL_PREFIX}{lang}" if lang else None


def derive_language_name_from_symbol(symbol: str | None) -> str | None:
    if not symbol:
        return None
    if symbol.startswith(constants.SYMBOL_PREFIX):
        return symbol[len(constants.SYMBOL_PREFIX) :] or None
    return symbol


def derive_language_name_from_path(path: str | None) -> str | None:
    return derive_language_name_from_symbol(derive_symbol_from_path(path))
