"""Language handles and the loaders that produce them.

Every load goes through the runtime's language registry cache. Loads with
alternatives are written as ordered lists of attempts returning
:class:`LoadResult`; the first success wins and the failures are kept for the
error message.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable

from . import constants
from .backend_registry import BackendCategory, BackendTag, UnwrapStrategy
from .errors import (
    BackendMismatch,
    ConfigurationError,
    NotAvailable,
    TreeHaverError,
)
from .library_path_utils import derive_language_name_from_symbol, derive_symbol_from_path
from .path_validator import is_safe_symbol_name
from .registration import GrammarRegistration, LibraryRegistration

if TYPE_CHECKING:
    from .runtime import Runtime

logger = logging.getLogger(__name__)

# Failures a load attempt reports as a result instead of raising.
# ConfigurationError is deliberately re-raised: bad input is never a fallback.
LOAD_ERRORS = (TreeHaverError, OSError, ImportError, AttributeError)


@dataclass(frozen=True)
class LanguageHandle:
    """A backend-tagged reference to a loaded grammar, with its provenance."""

    backend: str
    name: str | None
    inner: Any
    path: str | None = None
    symbol: str | None = None
    grammar: Any = None

    def __repr__(self) -> str:
        source = self.path or (type(self.grammar).__name__ if self.grammar is not None else "bundled")
        return f"LanguageHandle({self.name!r}, backend={self.backend!r}, source={source!r})"


@dataclass(frozen=True)
class LoadResult:
    """Outcome of one load attempt: a value or the reason there is none."""

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> LoadResult:
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> LoadResult:
        return cls(error=error)

    def unwrap(self) -> Any:
        if not self.ok:
            raise NotAvailable(self.error)
        return self.value


def attempt(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> LoadResult:
    """Run one load attempt, turning documented load failures into a LoadResult."""
    try:
        return LoadResult.success(fn(*args, **kwargs))
    except ConfigurationError:
        raise
    except LOAD_ERRORS as err:
        return LoadResult.failure(f"{type(err).__name__}: {err}")


def first_ok(attempts: Iterable[Callable[[], LoadResult]]) -> LoadResult:
    """Evaluate *attempts* in order; return the first success or all failures joined."""
    errors: list[str] = []
    for run in attempts:
        result = run()
        if result.ok:
            if errors:
                logger.info("Load succeeded after fallback; earlier failures: %s", "; ".join(errors))
            return result
        errors.append(result.error)
    return LoadResult.failure("; ".join(errors) or "no load attempts")


class LanguageLoader:
    """Resolves registrations, paths and grammars into cached LanguageHandles."""

    def __init__(self, runtime: Runtime):
        self._runtime = runtime

    @property
    def _backends(self):
        return self._runtime.backends

    # ── backend resolution ───────────────────────────────────────

    def _known_tag(self, kind: str) -> BackendTag:
        tag = self._backends.tag(kind)
        if tag is None:
            raise ConfigurationError(
                f"Unknown backend {kind!r}; registered: {', '.join(self._backends.registered_backends())}"
            )
        return tag

    def native_library_kind(self, backend: str | None = None) -> str:
        """The native backend that will load a grammar library.

        Under auto, the first available backend that loads shared libraries.
        An explicit request must name an available native backend.
        """
        requested = backend or self._runtime.effective_backend()
        if requested == constants.BACKEND_AUTO:
            for tag in self._backends.priority_order():
                if tag.is_native and tag.loads_shared_libraries and self._backends.is_available(tag.name):
                    return tag.name
            raise NotAvailable(
                "No native tree-sitter backend available to load grammar libraries; "
                "install tree-sitter or set TREE_SITTER_RUNTIME_LIB"
            )
        tag = self._known_tag(requested)
        if not tag.is_native:
            raise NotAvailable(f"Backend {requested!r} cannot load native grammar libraries")
        if not self._backends.is_available(requested):
            raise NotAvailable(f"Backend {requested!r} is not available in this environment")
        return requested

    # ── loaders ──────────────────────────────────────────────────

    def from_library(
        self,
        path: str,
        symbol: str | None = None,
        name: str | None = None,
        validate: bool = True,
        backend: str | None = None,
    ) -> LanguageHandle:
        """Load (or fetch from cache) the grammar in the shared library *path*.

        Raises:
            ConfigurationError: The path or symbol fails validation.
            NotAvailable: No suitable backend, or the library/symbol cannot be loaded.
        """
        env_symbol = os.environ.get(constants.ENV_LANG_SYMBOL) or None
        if validate:
            errors = self._runtime.validator.validation_errors(path)
            if errors:
                raise ConfigurationError(f"Unsafe grammar library path {path!r}: {'; '.join(errors)}")
            for candidate in (symbol, env_symbol):
                if candidate is not None and not is_safe_symbol_name(candidate):
                    raise ConfigurationError(f"Invalid grammar symbol: {candidate!r}")
        kind = self.native_library_kind(backend)
        effective_symbol = symbol or env_symbol or derive_symbol_from_path(path)
        effective_name = name or derive_language_name_from_symbol(effective_symbol)
        key = ("library", kind, path, symbol, effective_name, env_symbol)
        return self._runtime.languages.fetch(
            key, lambda: self._load_native(kind, path, effective_symbol, effective_name)
        )

    def _load_native(self, kind: str, path: str | None, symbol: str | None, name: str | None) -> LanguageHandle:
        module = self._backends.module(kind)
        self._runtime.claim_backend(kind)
        try:
            inner = module.Language.from_library(path, symbol=symbol, name=name)
        except (OSError, AttributeError) as err:
            raise NotAvailable(f"Could not load {symbol} from {path} with {kind}: {err}") from err
        logger.info("Loaded language %s via %s", name, kind)
        return LanguageHandle(backend=kind, name=name, inner=inner, path=path, symbol=symbol)

    def bundled(self, name: str, backend: str = constants.BACKEND_LANGUAGE_PACK) -> LanguageHandle:
        """Load a grammar a backend ships with, resolved by name alone."""
        tag = self._known_tag(backend)
        if tag.unwrap is not UnwrapStrategy.NAME:
            raise NotAvailable(f"Backend {backend!r} does not bundle grammars")
        if not self._backends.is_available(backend):
            raise NotAvailable(f"Backend {backend!r} is not available in this environment")

        def load() -> LanguageHandle:
            module = self._backends.module(backend)
            self._runtime.claim_backend(backend)
            inner = module.Language.from_name(name)
            return LanguageHandle(backend=backend, name=name, inner=inner)

        return self._runtime.languages.fetch(("bundled", backend, name), load)

    def from_grammar(self, grammar: Any, name: str | None = None, backend: str = constants.BACKEND_LARK) -> LanguageHandle:
        tag = self._known_tag(backend)
        if tag.category is not BackendCategory.GRAMMAR:
            raise ConfigurationError(f"Backend {backend!r} is not a grammar backend")
        if not self._backends.is_available(backend):
            raise NotAvailable(f"Backend {backend!r} is not available in this environment")

        def load() -> LanguageHandle:
            module = self._backends.module(backend)
            inner = module.Language.from_grammar(grammar, name=name)
            return LanguageHandle(backend=backend, name=name, inner=inner, grammar=grammar)

        # The cached handle keeps the grammar alive, so its id cannot be reused.
        return self._runtime.languages.fetch(("grammar", backend, id(grammar), name), load)

    # ── registry-driven loading ──────────────────────────────────

    def load(self, name: str, backend: str | None = None) -> LanguageHandle:
        """Load a registered language for *backend* (or the effective backend).

        Under auto the native registration is tried first, then each grammar
        registration by backend priority. An explicitly requested backend only
        ever uses a registration it can serve.
        """
        slots = self._runtime.languages.registered(name) or {}
        if not slots:
            raise NotAvailable(f"Language {name!r} is not registered")
        requested = backend or self._runtime.effective_backend()

        if requested == constants.BACKEND_AUTO:
            result = first_ok(self._auto_attempts(name, slots))
            if not result.ok:
                raise NotAvailable(f"Could not load language {name!r}: {result.error}")
            return result.value

        tag = self._known_tag(requested)
        if tag.is_native:
            registration = slots.get(requested) or slots.get(constants.NATIVE_REGISTRATION_SLOT)
            if isinstance(registration, LibraryRegistration):
                return self.from_library(
                    registration.library_path, registration.symbol, name, backend=requested
                )
            if tag.unwrap is UnwrapStrategy.NAME:
                return self.bundled(name, requested)
            raise NotAvailable(
                f"Language {name!r} has no grammar library registered for backend {requested!r} "
                f"(registered: {', '.join(sorted(slots))})"
            )
        registration = slots.get(requested)
        if isinstance(registration, GrammarRegistration):
            return self.from_grammar(registration.grammar, name, backend=requested)
        raise NotAvailable(
            f"Language {name!r} has no grammar registered for backend {requested!r} "
            f"(registered: {', '.join(sorted(slots))})"
        )

    def _auto_attempts(self, name: str, slots: dict) -> list[Callable[[], LoadResult]]:
        attempts: list[Callable[[], LoadResult]] = []
        library = next((reg for reg in slots.values() if isinstance(reg, LibraryRegistration)), None)
        if library is not None:
            attempts.append(
                lambda: attempt(self.from_library, library.library_path, library.symbol, name)
            )
        for kind in self._backends.grammar_kinds():
            registration = slots.get(kind)
            if isinstance(registration, GrammarRegistration):
                attempts.append(
                    lambda reg=registration, k=kind: attempt(self.from_grammar, reg.grammar, name, k)
                )
        return attempts

    def reload(self, handle: LanguageHandle, kind: str) -> LanguageHandle:
        """Reload *handle*'s grammar for native backend *kind* from its provenance.

        Raises:
            BackendMismatch: The handle has no provenance usable by *kind*,
                or the reload failed.
        """
        tag = self._known_tag(kind)
        if not tag.is_native:
            raise BackendMismatch(
                f"Language {handle.name!r} was loaded for {handle.backend!r} and cannot be "
                f"reloaded for grammar backend {kind!r}"
            )
        if tag.loads_shared_libraries and handle.path:
            result = attempt(self.from_library, handle.path, handle.symbol, handle.name, backend=kind)
        elif tag.unwrap is UnwrapStrategy.NAME and handle.name:
            result = attempt(self.bundled, handle.name, kind)
        else:
            raise BackendMismatch(
                f"Language {handle.name!r} was loaded for {handle.backend!r} without a "
                f"library path; it cannot be reloaded for {kind!r}"
            )
        if not result.ok:
            raise BackendMismatch(
                f"Reloading language {handle.name!r} for {kind!r} failed: {result.error}"
            )
        logger.info("Reloaded language %s for %s (was %s)", handle.name, kind, handle.backend)
        return result.value
