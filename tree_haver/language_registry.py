"""Language Registry — registrations per (language, backend slot) plus the load cache."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Hashable

from .errors import ConfigurationError
from .path_validator import is_safe_language_name
from .registration import Registration

logger = logging.getLogger(__name__)


def _checked_name(name: str) -> str:
    if not is_safe_language_name(name):
        raise ConfigurationError(
            f"Invalid language name: {name!r}. Language names must start with a "
            "lowercase letter and contain only lowercase letters, digits and underscores."
        )
    return name


class LanguageRegistry:
    """Thread-safe store of language registrations and loaded language handles.

    A single lock guards both maps. :meth:`fetch` runs its compute callback
    outside the lock, so a computation that registers further state cannot
    deadlock; two threads may compute the same key, but only the first stored
    value is kept and returned to both.
    """

    def __init__(self):
        self._lock = threading.Lock()
        # language name → {backend slot → registration}
        self._registrations: dict[str, dict[str, Registration]] = {}
        self._cache: dict[Hashable, Any] = {}

    # ── registrations ────────────────────────────────────────────

    def register(self, name: str, backend_kind: str, registration: Registration) -> None:
        """Store *registration* in the ``(name, backend_kind)`` slot only."""
        key = _checked_name(name)
        with self._lock:
            self._registrations.setdefault(key, {})[backend_kind] = registration
        logger.debug("Registered %s for language %s", backend_kind, key)

    def unregister(self, name: str, backend_kind: str | None = None) -> None:
        with self._lock:
            if backend_kind is None:
                self._registrations.pop(name, None)
                return
            slots = self._registrations.get(name)
            if slots is not None:
                slots.pop(backend_kind, None)
                if not slots:
                    del self._registrations[name]

    def registered(self, name: str, backend_kind: str | None = None):
        """All registrations for *name* (a copy), or the one in *backend_kind*.

        Returns ``None`` when nothing is registered.
        """
        with self._lock:
            slots = self._registrations.get(name)
            if slots is None:
                return None
            if backend_kind is None:
                return dict(slots)
            return slots.get(backend_kind)

    def registered_languages(self) -> list[str]:
        with self._lock:
            return sorted(self._registrations)

    # ── load cache ───────────────────────────────────────────────

    def fetch(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        value = compute()
        with self._lock:
            # setdefault keeps a value stored by a concurrent caller
            return self._cache.setdefault(key, value)

    def is_cached(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._cache

    # ── reset ────────────────────────────────────────────────────

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def clear_registrations(self) -> None:
        with self._lock:
            self._registrations.clear()

    def clear_all(self) -> None:
        with self._lock:
            self._registrations.clear()
            self._cache.clear()
