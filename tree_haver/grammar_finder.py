"""Grammar Locator — finds a language's grammar library on disk.

Search order for ``find_library_path``:

1. ``TREE_SITTER_<LANG>_PATH``, if it passes validation;
2. extra directories given to the finder;
3. the configured system search directories.

``find_library_path_safe`` skips the environment entirely and only returns
libraries inside trusted directories. Discovery never raises; it returns
``None`` and records why an environment override was rejected.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from pydantic import BaseModel

from . import constants
from .config import TrustPolicy
from .errors import ConfigurationError, NotAvailable
from .path_validator import has_traversal_segment, is_safe_language_name

if TYPE_CHECKING:
    from .runtime import Runtime

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    """Why an environment override path was ignored."""

    WHITESPACE = "whitespace"
    TRAVERSAL = "traversal"
    UNSAFE = "unsafe"
    UNTRUSTED = "untrusted"
    NOT_FOUND = "not_found"


class SearchInfo(BaseModel):
    language: str
    env_var: str
    env_value: str | None = None
    env_rejection: RejectionReason | None = None
    symbol: str
    library_filename: str
    search_paths: list[str] = []
    found_path: str | None = None
    available: bool = False


class GrammarFinder:
    """Locates the grammar library for one language.

    *validate* controls only the language-name check. Paths from the
    environment and the search directories are always validated.
    """

    def __init__(
        self,
        language_name: str,
        extra_paths: Iterable[str] = (),
        validate: bool = True,
        runtime: Runtime | None = None,
    ):
        if runtime is None:
            from .api import default_runtime

            runtime = default_runtime()
        self._runtime = runtime
        name = language_name.lower() if isinstance(language_name, str) else language_name
        if validate and not is_safe_language_name(name):
            raise ConfigurationError(f"Invalid language name: {language_name!r}")
        self.language_name = name
        self.extra_paths = tuple(extra_paths)
        self.validate = validate
        self.env_rejection: RejectionReason | None = None

    # ── naming ───────────────────────────────────────────────────

    @property
    def env_var_name(self) -> str:
        return constants.LANGUAGE_PATH_ENV_TEMPLATE.format(language=self.language_name.upper())

    @property
    def symbol_name(self) -> str:
        return f"{constants.SYMBOL_PREFIX}{self.language_name}"

    @property
    def library_filename(self) -> str:
        return f"{constants.LIBRARY_PREFIX}{self.language_name}{self._runtime.validator.library_suffix}"

    def search_paths(self) -> list[str]:
        dirs = (*self.extra_paths, *self._runtime.config.search_directories)
        return list(dict.fromkeys(os.path.join(d, self.library_filename) for d in dirs))

    # ── diagnostics ──────────────────────────────────────────────

    def _diagnose(self, message: str, *args) -> None:
        level = logging.WARNING if self._runtime.config.debug else logging.DEBUG
        logger.log(level, message, *args)

    # ── environment override ─────────────────────────────────────

    def validate_env_path(self, path: str) -> RejectionReason | None:
        """Why *path* cannot be used as an environment override, or ``None`` if it can."""
        validator = self._runtime.validator
        if path != path.strip():
            return RejectionReason.WHITESPACE
        if has_traversal_segment(path):
            return RejectionReason.TRAVERSAL
        if not validator.is_safe_library_path(path):
            return RejectionReason.UNSAFE
        if (
            self._runtime.config.env_trust_policy is TrustPolicy.TRUSTED_DIRECTORIES
            and not validator.in_trusted_directory(path)
        ):
            return RejectionReason.UNTRUSTED
        if not os.path.isfile(path):
            return RejectionReason.NOT_FOUND
        return None

    def _env_path(self) -> str | None:
        raw = os.environ.get(self.env_var_name)
        if not raw:
            self.env_rejection = None
            return None
        self.env_rejection = self.validate_env_path(raw)
        if self.env_rejection is not None:
            self._diagnose(
                "Ignoring %s=%r (%s)", self.env_var_name, raw, self.env_rejection.value
            )
            return None
        return raw

    # ── lookup ───────────────────────────────────────────────────

    def find_library_path(self) -> str | None:
        env_path = self._env_path()
        if env_path is not None:
            self._diagnose("Using %s from %s", env_path, self.env_var_name)
            return env_path
        validator = self._runtime.validator
        for candidate in self.search_paths():
            if not os.path.isfile(candidate):
                continue
            if not validator.is_safe_library_path(candidate):
                self._diagnose("Skipping unsafe grammar library %s", candidate)
                continue
            return candidate
        self._diagnose("No %s found in %s", self.library_filename, ", ".join(self.search_paths()))
        return None

    def find_library_path_safe(self) -> str | None:
        validator = self._runtime.validator
        for candidate in self.search_paths():
            if os.path.isfile(candidate) and validator.is_safe_library_path(
                candidate, require_trusted_dir=True
            ):
                return candidate
        return None

    def is_available(self) -> bool:
        return self.find_library_path() is not None

    def is_available_safe(self) -> bool:
        return self.find_library_path_safe() is not None

    def register(self, raise_on_missing: bool = False) -> bool:
        """Register the found library with the runtime; False if none was found."""
        path = self.find_library_path()
        if path is None:
            if raise_on_missing:
                raise NotAvailable(self.not_found_message())
            return False
        self._runtime.register_language(self.language_name, path=path, symbol=self.symbol_name)
        return True

    def search_info(self) -> SearchInfo:
        found = self.find_library_path()
        return SearchInfo(
            language=self.language_name,
            env_var=self.env_var_name,
            env_value=os.environ.get(self.env_var_name),
            env_rejection=self.env_rejection,
            symbol=self.symbol_name,
            library_filename=self.library_filename,
            search_paths=self.search_paths(),
            found_path=found,
            available=found is not None,
        )

    def not_found_message(self) -> str:
        message = f"tree-sitter {self.language_name} grammar not found."
        if self.env_rejection is not None:
            message += f" {self.env_var_name} was ignored ({self.env_rejection.value})."
        return (
            f"{message} Searched: {', '.join(self.search_paths())}. "
            f"Install {self.library_filename} or set {self.env_var_name}."
        )
