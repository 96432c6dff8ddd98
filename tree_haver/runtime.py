"""Runtime — composition root owning configuration and every registry.

Nothing in tree_haver keeps registry state in module globals; a Runtime holds
the language registry, backend registry and path validator, and everything
else receives one. :mod:`tree_haver.api` keeps a lazily created default
instance for callers that never need more than one.
"""

from __future__ import annotations

import contextvars
import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from pydantic import ValidationError

from . import constants
from .backend_registry import BackendCapabilities, BackendRegistry, UnwrapStrategy
from .config import HaverConfig
from .errors import BackendConflict, ConfigurationError, NotAvailable
from .grammar_finder import GrammarFinder
from .grammar_module_finder import GrammarModuleFinder
from .language import LanguageHandle, LanguageLoader, LoadResult, attempt, first_ok
from .language_registry import LanguageRegistry
from .parser import Parser
from .path_validator import PathValidator, is_safe_language_name
from .registration import GrammarRegistration, LibraryRegistration

logger = logging.getLogger(__name__)


class Runtime:
    def __init__(
        self,
        config: HaverConfig | None = None,
        languages: LanguageRegistry | None = None,
        backends: BackendRegistry | None = None,
        validator: PathValidator | None = None,
    ):
        self.config = config or HaverConfig.from_env()
        self.languages = languages or LanguageRegistry()
        self.backends = backends or BackendRegistry()
        self.validator = validator or PathValidator(self.config)
        self._loader = LanguageLoader(self)
        self._lock = threading.Lock()
        self._default_backend: str | None = None
        self._used_backends: set[str] = set()
        self._context_backend: contextvars.ContextVar[str | None] = contextvars.ContextVar(
            f"tree_haver_backend_{id(self)}", default=None
        )

    # ── backend selection ────────────────────────────────────────

    def _check_kind(self, kind: str) -> str:
        if kind == constants.BACKEND_AUTO or self.backends.is_registered(kind):
            return kind
        raise ConfigurationError(
            f"Unknown backend {kind!r}; registered: {', '.join(self.backends.registered_backends())}"
        )

    def set_backend(self, kind: str) -> None:
        """Set the default backend for this runtime, overriding the configuration."""
        self._default_backend = self._check_kind(kind)
        logger.info("Default backend set to %s", kind)

    def reset_backend(self) -> None:
        self._default_backend = None

    def _default(self) -> str:
        kind = self._default_backend or self.config.backend
        if kind != constants.BACKEND_AUTO and not self.backends.is_registered(kind):
            logger.debug("Configured backend %s is not registered; using auto", kind)
            return constants.BACKEND_AUTO
        return kind

    def effective_backend(self) -> str:
        """The backend in force here: ``with_backend`` context, then the default."""
        return self._context_backend.get() or self._default()

    @contextmanager
    def with_backend(self, kind: str) -> Iterator[Runtime]:
        """Force *kind* for parsers and loads in this thread or task only."""
        token = self._context_backend.set(self._check_kind(kind))
        try:
            yield self
        finally:
            self._context_backend.reset(token)

    def select_backend(self, backend: str | None = None) -> tuple[str, bool]:
        """Choose a backend for a new parser; returns ``(kind, explicit)``.

        Explicit means demanded by the caller (argument or ``with_backend``),
        which rules out silent fallback. The configured default is a preference.
        """
        if backend and backend != constants.BACKEND_AUTO:
            return self._check_kind(backend), True
        context = self._context_backend.get()
        if context and context != constants.BACKEND_AUTO:
            return context, True
        default = self._default()
        if default != constants.BACKEND_AUTO:
            return default, False
        for tag in self.backends.priority_order():
            if self.backends.is_available(tag.name):
                return tag.name, False
        raise NotAvailable(
            "No parsing backend available; install tree-sitter, "
            "tree-sitter-language-pack or lark"
        )

    def capabilities(self, backend: str | None = None) -> BackendCapabilities:
        """Capability table for *backend*, or for the backend a new parser would get."""
        kind, _ = self.select_backend(backend)
        return self.backends.capabilities(kind)

    # ── backend usage and conflicts ──────────────────────────────

    def claim_backend(self, kind: str) -> None:
        """Record that *kind* is in use, refusing it if a blocking backend already is.

        Raises:
            BackendConflict: Protection is on and a backend listed in the tag's
                ``blocked_by`` has already been used.
        """
        tag = self.backends.tag(kind)
        blockers = tag.blocked_by if tag is not None else ()
        with self._lock:
            if self.config.backend_protect:
                conflicts = sorted(b for b in blockers if b in self._used_backends)
                if conflicts:
                    raise BackendConflict(
                        f"Backend {kind!r} cannot be used after {', '.join(conflicts)} "
                        "in the same process"
                    )
            self._used_backends.add(kind)

    def used_backends(self) -> list[str]:
        with self._lock:
            return sorted(self._used_backends)

    def new_backend_parser(self, kind: str) -> Any:
        """A fresh backend-native parser for *kind*."""
        if not self.backends.is_available(kind):
            raise NotAvailable(f"Backend {kind!r} is not available in this environment")
        module = self.backends.module(kind)
        self.claim_backend(kind)
        return module.Parser()

    # ── languages ────────────────────────────────────────────────

    def register_language(
        self,
        name: str,
        path: str | None = None,
        symbol: str | None = None,
        grammar: Any = None,
        grammar_backend: str = constants.BACKEND_LARK,
        source_identifier: str | None = None,
    ) -> None:
        """Register a grammar library, an in-process grammar, or both for *name*.

        A library goes into the slot shared by all native backends; a grammar
        goes into the *grammar_backend* slot. Nothing is stored unless every
        given source is valid.
        """
        if path is None and grammar is None:
            raise ConfigurationError("register_language needs a library path or a grammar")
        if not is_safe_language_name(name):
            raise ConfigurationError(f"Invalid language name: {name!r}")
        entries = []
        try:
            if path is not None:
                entries.append(
                    (constants.NATIVE_REGISTRATION_SLOT, LibraryRegistration(library_path=path, symbol=symbol))
                )
            if grammar is not None:
                tag = self.backends.tag(grammar_backend)
                if tag is None or tag.is_native:
                    raise ConfigurationError(f"{grammar_backend!r} is not a grammar backend")
                entries.append(
                    (grammar_backend, GrammarRegistration(grammar=grammar, source_identifier=source_identifier))
                )
        except ValidationError as err:
            raise ConfigurationError(f"Invalid registration for {name!r}: {err}") from err
        for slot, registration in entries:
            self.languages.register(name, slot, registration)
        logger.info("Registered language %s (%s)", name, ", ".join(slot for slot, _ in entries))

    def load_language(
        self,
        name: str,
        backend: str | None = None,
        path: str | None = None,
        symbol: str | None = None,
    ) -> LanguageHandle:
        """Load *name* from an explicit *path*, or from its registrations."""
        if path is not None:
            return self._loader.from_library(path, symbol, name, backend=backend)
        return self._loader.load(name, backend)

    def language_from_library(
        self,
        path: str,
        symbol: str | None = None,
        name: str | None = None,
        validate: bool = True,
        backend: str | None = None,
    ) -> LanguageHandle:
        return self._loader.from_library(path, symbol, name, validate=validate, backend=backend)

    def language_from_grammar(
        self, grammar: Any, name: str | None = None, backend: str = constants.BACKEND_LARK
    ) -> LanguageHandle:
        return self._loader.from_grammar(grammar, name, backend)

    def bundled_language(self, name: str, backend: str = constants.BACKEND_LANGUAGE_PACK) -> LanguageHandle:
        return self._loader.bundled(name, backend)

    def reload_language(self, handle: LanguageHandle, backend: str) -> LanguageHandle:
        return self._loader.reload(handle, backend)

    def grammar_finder(self, name: str, extra_paths=(), validate: bool = True) -> GrammarFinder:
        return GrammarFinder(name, extra_paths=extra_paths, validate=validate, runtime=self)

    # ── parser_for ───────────────────────────────────────────────

    def parser_for(
        self,
        name: str,
        library_path: str | None = None,
        symbol: str | None = None,
        grammar_config: dict | None = None,
        backend: str | None = None,
    ) -> Parser:
        """A parser with a grammar for *name* already bound.

        Sources are tried in order: registrations, *library_path*, the grammar
        library search path, the bundled language pack, then the in-process
        grammar described by *grammar_config* (``module_path``,
        ``grammar_attr`` and optionally ``backend_kind``).

        Raises:
            NotAvailable: No source produced a grammar usable by *backend*.
        """
        if not is_safe_language_name(name):
            raise ConfigurationError(f"Invalid language name: {name!r}")
        requested = backend or self.effective_backend()
        tag = None if requested == constants.BACKEND_AUTO else self.backends.tag(requested)
        if requested != constants.BACKEND_AUTO and tag is None:
            raise ConfigurationError(f"Unknown backend {requested!r}")
        wants_native = tag is None or tag.is_native
        wants_grammar = tag is None or not tag.is_native

        chain: list[Callable[[], LoadResult]] = []
        if self.languages.registered(name):
            chain.append(lambda: attempt(self.load_language, name, backend))
        if wants_native and library_path:
            chain.append(lambda: attempt(self._from_existing_path, library_path, symbol, name, backend))
        if wants_native:
            chain.append(lambda: attempt(self._from_search_path, name, symbol, backend))
        for bundler in self.backends.priority_order():
            if bundler.unwrap is UnwrapStrategy.NAME and (tag is None or bundler.name == requested):
                chain.append(lambda kind=bundler.name: attempt(self.bundled_language, name, kind))
        if wants_grammar and grammar_config:
            chain.append(lambda: attempt(self._from_grammar_module, name, grammar_config))

        result = first_ok(chain)
        if not result.ok:
            raise NotAvailable(
                f"No grammar available for {name!r} (backend {requested}): {result.error}. "
                f"Set {constants.LANGUAGE_PATH_ENV_TEMPLATE.format(language=name.upper())} "
                "or register the language first."
            )
        handle = result.value
        parser = Parser(backend=handle.backend, runtime=self)
        parser.language = handle
        return parser

    def _from_existing_path(self, path: str, symbol, name: str, backend) -> LanguageHandle:
        if not os.path.isfile(path):
            raise NotAvailable(f"Grammar library not found: {path}")
        return self.language_from_library(path, symbol, name, backend=backend)

    def _from_search_path(self, name: str, symbol, backend) -> LanguageHandle:
        finder = self.grammar_finder(name)
        path = finder.find_library_path()
        if path is None:
            raise NotAvailable(finder.not_found_message())
        return self.language_from_library(path, symbol or finder.symbol_name, name, backend=backend)

    def _from_grammar_module(self, name: str, grammar_config: dict) -> LanguageHandle:
        finder = GrammarModuleFinder(
            name,
            grammar_config["module_path"],
            grammar_config["grammar_attr"],
            backend_kind=grammar_config.get("backend_kind", constants.BACKEND_LARK),
            runtime=self,
        )
        finder.register(raise_on_missing=True)
        return self.load_language(name, backend=finder.backend_kind)

    # ── reset ────────────────────────────────────────────────────

    def clear_cache(self) -> None:
        self.languages.clear_cache()
        self.backends.clear_cache()

    def reset(self) -> None:
        """Forget registrations, caches, backend usage and the default backend."""
        self.languages.clear_all()
        self.backends.clear_cache()
        self.validator.clear_custom_trusted_directories()
        with self._lock:
            self._used_backends.clear()
        self._default_backend = None
