"""Parser facade — picks a backend, binds a language, returns unified trees.

The facade is the only place that converts between LanguageHandle/Tree/Node
wrappers and backend-native objects.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .backend_registry import BackendCapabilities, UnwrapStrategy
from .errors import BackendMismatch, ConfigurationError, NotAvailable, TreeHaverError
from .language import LanguageHandle, attempt
from .tree import Tree

if TYPE_CHECKING:
    from .runtime import Runtime

logger = logging.getLogger(__name__)


class Parser:
    """Parses source text with whichever backend fits the assigned language.

    The backend is chosen at construction: the *backend* argument, then the
    runtime's ``with_backend`` context, then its configured default, then the
    first available backend by priority. When the chosen native backend
    cannot build a parser and nothing was demanded explicitly, the facade
    falls back once to an available grammar backend.
    """

    def __init__(self, backend: str | None = None, runtime: Runtime | None = None):
        if runtime is None:
            from .api import default_runtime

            runtime = default_runtime()
        self._runtime = runtime
        self._language: LanguageHandle | None = None
        kind, self._explicit = runtime.select_backend(backend)
        self._backend, self._impl = self._construct(kind)

    # ── construction ─────────────────────────────────────────────

    def _construct(self, kind: str) -> tuple[str, Any]:
        result = attempt(self._runtime.new_backend_parser, kind)
        if result.ok:
            logger.debug("Parser using backend %s", kind)
            return kind, result.value
        if self._explicit:
            raise NotAvailable(f"Backend {kind!r} could not create a parser: {result.error}")
        for fallback in self._runtime.backends.grammar_kinds():
            if fallback == kind or not self._runtime.backends.is_available(fallback):
                continue
            retry = attempt(self._runtime.new_backend_parser, fallback)
            if retry.ok:
                logger.warning(
                    "Backend %s could not create a parser (%s); falling back to %s",
                    kind,
                    result.error,
                    fallback,
                )
                return fallback, retry.value
        raise NotAvailable(
            f"Backend {kind!r} could not create a parser ({result.error}) "
            "and no grammar backend is available to fall back to"
        )

    def _switch(self, kind: str) -> None:
        result = attempt(self._runtime.new_backend_parser, kind)
        if not result.ok:
            raise NotAvailable(f"Cannot switch parser to backend {kind!r}: {result.error}")
        logger.info("Switching parser implementation from %s to %s", self._backend, kind)
        self._backend, self._impl = kind, result.value

    # ── state ────────────────────────────────────────────────────

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def capabilities(self) -> BackendCapabilities:
        return self._runtime.backends.capabilities(self._backend)

    @property
    def language(self) -> LanguageHandle | None:
        return self._language

    @language.setter
    def language(self, handle: LanguageHandle) -> None:
        if not isinstance(handle, LanguageHandle):
            raise ConfigurationError(
                f"Parser.language expects a LanguageHandle, got {type(handle).__name__}"
            )
        if handle.backend != self._backend:
            handle = self._adopt(handle)
        self._impl.language = self._unwrap(handle)
        self._language = handle

    def _adopt(self, handle: LanguageHandle) -> LanguageHandle:
        """Make *handle* usable by this parser: switch to its grammar backend or reload it."""
        tag = self._runtime.backends.tag(handle.backend)
        if tag is not None and not tag.is_native:
            if self._explicit:
                raise BackendMismatch(
                    f"Parser was created for backend {self._backend!r}; "
                    f"language {handle.name!r} belongs to {handle.backend!r}"
                )
            self._switch(handle.backend)
            return handle
        return self._runtime.reload_language(handle, self._backend)

    def _unwrap(self, handle: LanguageHandle) -> Any:
        tag = self._runtime.backends.tag(self._backend)
        strategy = tag.unwrap if tag is not None else UnwrapStrategy.INNER
        if strategy is UnwrapStrategy.NAME:
            return handle.name
        if strategy is UnwrapStrategy.HANDLE:
            return handle
        if strategy is UnwrapStrategy.GRAMMAR:
            return handle.grammar if handle.grammar is not None else handle.inner
        return handle.inner

    # ── parsing ──────────────────────────────────────────────────

    def parse(self, source: str | bytes) -> Tree:
        if self._language is None:
            raise TreeHaverError("Parser has no language assigned")
        return Tree(self._impl.parse(source), source, backend=self._backend)

    def parse_string(self, old_tree: Tree | None, source: str | bytes) -> Tree:
        """Reparse *source*, reusing *old_tree* when the backend can.

        Backends without incremental parsing get a full parse instead.
        """
        if self._language is None:
            raise TreeHaverError("Parser has no language assigned")
        if old_tree is None or not self.capabilities.incremental:
            logger.debug("Backend %s: full parse in place of incremental reparse", self._backend)
            return self.parse(source)
        native_old = old_tree.inner_tree if isinstance(old_tree, Tree) else old_tree
        return Tree(self._impl.parse_string(native_old, source), source, backend=self._backend)

    def __repr__(self) -> str:
        return f"Parser(backend={self._backend!r}, language={self._language!r})"
