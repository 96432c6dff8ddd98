"""tree_haver — one parsing API over tree-sitter bindings and in-process grammars."""

from __future__ import annotations

from .api import (
    capabilities,
    default_runtime,
    effective_backend,
    language_from_library,
    load_language,
    parse,
    parser_for,
    register_language,
    reset_default_runtime,
    set_backend,
    set_default_runtime,
    with_backend,
)
from .backend_registry import (
    BackendCapabilities,
    BackendCategory,
    BackendRegistry,
    BackendTag,
    UnwrapStrategy,
)
from .config import HaverConfig, TrustPolicy
from .errors import (
    BackendConflict,
    BackendMismatch,
    ConfigurationError,
    NotAvailable,
    TreeHaverError,
)
from .grammar_finder import GrammarFinder, RejectionReason
from .grammar_module_finder import GrammarModuleFinder
from .language import LanguageHandle, LoadResult
from .language_registry import LanguageRegistry
from .node import Node
from .parser import Parser
from .path_validator import PathValidator
from .point import Point
from .runtime import Runtime
from .tree import Tree

__all__ = [
    "BackendCapabilities",
    "BackendCategory",
    "BackendConflict",
    "BackendMismatch",
    "BackendRegistry",
    "BackendTag",
    "ConfigurationError",
    "GrammarFinder",
    "GrammarModuleFinder",
    "HaverConfig",
    "LanguageHandle",
    "LanguageRegistry",
    "LoadResult",
    "Node",
    "NotAvailable",
    "Parser",
    "PathValidator",
    "Point",
    "RejectionReason",
    "Runtime",
    "Tree",
    "TreeHaverError",
    "TrustPolicy",
    "UnwrapStrategy",
    "capabilities",
    "default_runtime",
    "effective_backend",
    "language_from_library",
    "load_language",
    "parse",
    "parser_for",
    "register_language",
    "reset_default_runtime",
    "set_backend",
    "set_default_runtime",
    "with_backend",
]
