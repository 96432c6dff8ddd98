"""Composable convenience functions over a process-wide default Runtime.

Each function delegates to the default runtime, created from the environment
on first use. Code that needs isolation (tests, embedding several
configurations) should build its own :class:`~tree_haver.runtime.Runtime`.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator

from .backend_registry import BackendCapabilities
from .language import LanguageHandle
from .parser import Parser
from .runtime import Runtime
from .tree import Tree

logger = logging.getLogger(__name__)

_default: Runtime | None = None
_default_lock = threading.Lock()


def default_runtime() -> Runtime:
    global _default
    with _default_lock:
        if _default is None:
            _default = Runtime()
            logger.debug("Created default runtime (backend=%s)", _default.config.backend)
        return _default


def set_default_runtime(runtime: Runtime) -> None:
    global _default
    with _default_lock:
        _default = runtime


def reset_default_runtime() -> None:
    """Discard the default runtime; the next call builds a fresh one."""
    global _default
    with _default_lock:
        _default = None


def register_language(name: str, **sources: Any) -> None:
    """Register a grammar library (``path``, ``symbol``) and/or a ``grammar`` for *name*."""
    default_runtime().register_language(name, **sources)


def load_language(name: str, backend: str | None = None, **kwargs: Any) -> LanguageHandle:
    return default_runtime().load_language(name, backend=backend, **kwargs)


def language_from_library(path: str, **kwargs: Any) -> LanguageHandle:
    return default_runtime().language_from_library(path, **kwargs)


def parser_for(name: str, **kwargs: Any) -> Parser:
    return default_runtime().parser_for(name, **kwargs)


def parse(source: str | bytes, language: str, **kwargs: Any) -> Tree:
    """Parse *source* with a parser for *language* built by :func:`parser_for`."""
    return parser_for(language, **kwargs).parse(source)


def set_backend(kind: str) -> None:
    default_runtime().set_backend(kind)


def effective_backend() -> str:
    return default_runtime().effective_backend()


@contextmanager
def with_backend(kind: str) -> Iterator[Runtime]:
    with default_runtime().with_backend(kind) as runtime:
        yield runtime


def capabilities(backend: str | None = None) -> BackendCapabilities:
    return default_runtime().capabilities(backend)
