"""Backend Registry — tags, availability predicates and the capability table."""

from __future__ import annotations

import importlib
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .errors import ConfigurationError, NotAvailable, TreeHaverError

logger = logging.getLogger(__name__)


class BackendCategory(Enum):
    """Whether a backend binds compiled grammars or runs in-process grammars."""

    NATIVE = "native"
    GRAMMAR = "grammar"


class UnwrapStrategy(Enum):
    """What a backend parser expects to receive as its language."""

    INNER = "inner"  # the handle's native language object
    NAME = "name"  # the plain language name
    HANDLE = "handle"  # the LanguageHandle itself
    GRAMMAR = "grammar"  # the in-process grammar reference


@dataclass(frozen=True)
class BackendTag:
    """Static metadata describing one backend kind."""

    name: str
    category: BackendCategory
    module_path: str | None = None
    priority: int = 100
    unwrap: UnwrapStrategy = UnwrapStrategy.INNER
    loads_shared_libraries: bool = False
    blocked_by: tuple[str, ...] = ()

    @property
    def is_native(self) -> bool:
        return self.category is BackendCategory.NATIVE


@dataclass(frozen=True)
class BackendCapabilities:
    """What a backend supports, computed once from its module."""

    backend: str
    incremental: bool = False
    editing: bool = False
    field_lookup: bool = False
    native_library: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_module(cls, tag: BackendTag, module: Any) -> BackendCapabilities:
        parser_cls = getattr(module, "Parser", None)
        tree_cls = getattr(module, "Tree", None)
        node_cls = getattr(module, "Node", None)
        reported = getattr(module, "capabilities", None)
        return cls(
            backend=tag.name,
            incremental=callable(getattr(parser_cls, "parse_string", None)),
            editing=callable(getattr(tree_cls, "edit", None)),
            field_lookup=callable(getattr(node_cls, "child_by_field_name", None)),
            native_library=tag.loads_shared_libraries,
            details=dict(reported()) if callable(reported) else {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend,
            "incremental": self.incremental,
            "editing": self.editing,
            "field_lookup": self.field_lookup,
            "native_library": self.native_library,
            **self.details,
        }


AvailabilityChecker = Callable[[], bool]

# Failures an availability probe may raise without being a bug in the probe
_PROBE_ERRORS = (TreeHaverError, ImportError, OSError, AttributeError)


class BackendRegistry:
    """Knows every backend kind, whether it is usable here, and what it supports.

    Third-party backends join through :meth:`register_backend` (full tag,
    optionally with an already-imported module) or
    :meth:`register_availability_checker` (a bare predicate). Availability
    results and capability tables are cached until :meth:`clear_cache`.
    """

    def __init__(self, builtins: bool = True):
        self._lock = threading.Lock()
        self._builtins = builtins
        self._tags: dict[str, BackendTag] = {}
        self._modules: dict[str, Any] = {}
        self._checkers: dict[str, AvailabilityChecker] = {}
        self._availability: dict[str, bool] = {}
        self._capabilities: dict[str, BackendCapabilities] = {}
        self._load_builtins()

    def _load_builtins(self) -> None:
        if not self._builtins:
            return
        from .backends import BUILTIN_BACKENDS

        for tag in BUILTIN_BACKENDS:
            self._tags[tag.name] = tag

    # ── registration ─────────────────────────────────────────────

    def register_backend(self, tag: BackendTag, module: Any = None) -> None:
        if not tag.name or not isinstance(tag.name, str):
            raise ConfigurationError(f"Backend name must be a non-empty string, got {tag.name!r}")
        if module is None and tag.module_path is None:
            raise ConfigurationError(f"Backend {tag.name!r} needs a module or a module_path")
        with self._lock:
            self._tags[tag.name] = tag
            if module is not None:
                self._modules[tag.name] = module
            else:
                self._modules.pop(tag.name, None)
            self._availability.pop(tag.name, None)
            self._capabilities.pop(tag.name, None)
        logger.debug("Registered backend %s (%s, priority %d)", tag.name, tag.category.value, tag.priority)

    def register_availability_checker(self, name: str, checker: AvailabilityChecker) -> None:
        if not callable(checker):
            raise ConfigurationError(f"Availability checker for {name!r} must be callable")
        with self._lock:
            self._checkers[name] = checker
            self._availability.pop(name, None)

    # ── queries ──────────────────────────────────────────────────

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return name in self._tags or name in self._checkers

    def registered_backends(self) -> list[str]:
        with self._lock:
            return sorted(set(self._tags) | set(self._checkers))

    def tag(self, name: str) -> BackendTag | None:
        with self._lock:
            return self._tags.get(name)

    def priority_order(self) -> list[BackendTag]:
        with self._lock:
            tags = list(self._tags.values())
        return sorted(tags, key=lambda t: (t.priority, t.name))

    def native_kinds(self) -> list[str]:
        return [t.name for t in self.priority_order() if t.is_native]

    def grammar_kinds(self) -> list[str]:
        return [t.name for t in self.priority_order() if not t.is_native]

    def is_available(self, name: str) -> bool:
        """Probe (once) whether backend *name* can be used in this process.

        Probe failures are logged and reported as unavailable. The probe runs
        outside the lock, so a checker may itself touch the registry.
        """
        with self._lock:
            if name in self._availability:
                return self._availability[name]
            checker = self._checkers.get(name)
            known = name in self._tags
        if checker is None and not known:
            return False
        try:
            result = bool(checker()) if checker is not None else self._module_reports_available(name)
        except _PROBE_ERRORS as err:
            logger.debug("Backend %s availability probe failed: %s", name, err)
            result = False
        with self._lock:
            return self._availability.setdefault(name, result)

    def _module_reports_available(self, name: str) -> bool:
        module = self.module(name)
        probe = getattr(module, "available", None)
        return bool(probe()) if callable(probe) else True

    def module(self, name: str) -> Any:
        """The backend module for *name*, imported on first use.

        Raises:
            NotAvailable: The backend is unknown or its module cannot be imported.
        """
        with self._lock:
            if name in self._modules:
                return self._modules[name]
            tag = self._tags.get(name)
        if tag is None or tag.module_path is None:
            raise NotAvailable(f"Unknown backend: {name!r}")
        try:
            module = importlib.import_module(tag.module_path)
        except ImportError as err:
            raise NotAvailable(f"Backend {name!r} cannot be imported: {err}") from err
        capabilities = BackendCapabilities.from_module(tag, module)
        with self._lock:
            self._capabilities.setdefault(name, capabilities)
            return self._modules.setdefault(name, module)

    def capabilities(self, name: str) -> BackendCapabilities:
        with self._lock:
            cached = self._capabilities.get(name)
        if cached is not None:
            return cached
        module = self.module(name)
        tag = self.tag(name) or BackendTag(name=name, category=BackendCategory.NATIVE)
        with self._lock:
            return self._capabilities.setdefault(name, BackendCapabilities.from_module(tag, module))

    # ── reset ────────────────────────────────────────────────────

    def clear_cache(self) -> None:
        with self._lock:
            self._availability.clear()
            self._capabilities.clear()

    def clear(self) -> None:
        """Drop every registration and cached result, restoring built-ins."""
        with self._lock:
            self._tags.clear()
            self._modules.clear()
            self._checkers.clear()
            self._availability.clear()
            self._capabilities.clear()
            self._load_builtins()
