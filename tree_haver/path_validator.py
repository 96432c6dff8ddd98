"""Safety checks for paths and names that end up in a dynamic library load.

Loading a shared library executes native code, so every path taken from a
caller or the environment passes through here first. The checks are purely
lexical except for :meth:`PathValidator.in_trusted_directory`, which resolves
symlinks to stop a trusted-looking path from pointing elsewhere.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from typing import Iterable

from . import constants
from .config import HaverConfig
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(constants.VALID_FILENAME_PATTERN)
_LANGUAGE_RE = re.compile(constants.VALID_LANGUAGE_PATTERN)
_SYMBOL_RE = re.compile(constants.VALID_SYMBOL_PATTERN)
_WINDOWS_ABS_RE = re.compile(constants.WINDOWS_ABSOLUTE_PATTERN)
_SEGMENT_SPLIT_RE = re.compile(r"[\\/]")


# ── Pure helpers ─────────────────────────────────────────────────


def is_windows_absolute_path(path: str) -> bool:
    return bool(_WINDOWS_ABS_RE.match(path))


def is_absolute_path(path: str) -> bool:
    return path.startswith("/") or is_windows_absolute_path(path)


def has_traversal_segment(path: str) -> bool:
    """True if any path segment is ``..`` or ``.``."""
    return any(seg in ("..", ".") for seg in _SEGMENT_SPLIT_RE.split(path))


def is_safe_language_name(name: object) -> bool:
    if not isinstance(name, str) or not name:
        return False
    if len(name) > constants.MAX_LANGUAGE_NAME_LENGTH:
        return False
    return bool(_LANGUAGE_RE.match(name))


def is_safe_symbol_name(symbol: object) -> bool:
    if not isinstance(symbol, str) or not symbol:
        return False
    if len(symbol) > constants.MAX_SYMBOL_LENGTH:
        return False
    return bool(_SYMBOL_RE.match(symbol))


def sanitize_language_name(name: object) -> str | None:
    """Lowercase *name* and strip disallowed characters; ``None`` if nothing usable remains."""
    if name is None:
        return None
    sanitized = re.sub(r"[^a-z0-9_]", "", str(name).lower())
    if not sanitized or not sanitized[0].isalpha():
        return None
    return sanitized[: constants.MAX_LANGUAGE_NAME_LENGTH]


def _is_within(path: str, directory: str) -> bool:
    directory = directory.rstrip("/\\") or directory
    if path == directory:
        return True
    return path.startswith(directory + os.sep)


# ── Validator ────────────────────────────────────────────────────


class PathValidator:
    """Validates library paths against lexical rules and a trusted-directory list.

    The trusted list is instance state: configured defaults, directories from
    ``TREE_HAVER_TRUSTED_DIRS`` captured in the config, and directories added at
    runtime through :meth:`add_trusted_directory`.
    """

    def __init__(self, config: HaverConfig | None = None):
        self._config = config or HaverConfig()
        self._lock = threading.Lock()
        self._custom_trusted: list[str] = []

    @property
    def library_suffix(self) -> str:
        return self._config.library_suffix

    # ── trusted directories ──────────────────────────────────────

    def trusted_directories(self) -> list[str]:
        with self._lock:
            custom = list(self._custom_trusted)
        dirs: Iterable[str] = (
            *self._config.trusted_directories,
            *custom,
            *self._config.env_trusted_directories,
        )
        return list(dict.fromkeys(os.path.abspath(d) for d in dirs if is_absolute_path(d)))

    def add_trusted_directory(self, directory: str) -> None:
        expanded = os.path.abspath(os.path.expanduser(directory))
        if not is_absolute_path(os.path.expanduser(directory)):
            raise ConfigurationError(
                f"Trusted directory must be an absolute path: {directory!r}"
            )
        with self._lock:
            if expanded not in self._custom_trusted:
                self._custom_trusted.append(expanded)
        logger.debug("Added trusted directory %s", expanded)

    def remove_trusted_directory(self, directory: str) -> None:
        expanded = os.path.abspath(os.path.expanduser(directory))
        with self._lock:
            if expanded in self._custom_trusted:
                self._custom_trusted.remove(expanded)

    def clear_custom_trusted_directories(self) -> None:
        with self._lock:
            self._custom_trusted.clear()

    def custom_trusted_directories(self) -> list[str]:
        with self._lock:
            return list(self._custom_trusted)

    # ── path checks ──────────────────────────────────────────────

    def validation_errors(self, path: str | None) -> list[str]:
        """Return every reason *path* is unsafe; empty means lexically safe."""
        if not path:
            return ["Path is empty"]
        errors: list[str] = []
        if len(path) > constants.MAX_PATH_LENGTH:
            errors.append(f"Path exceeds maximum length ({constants.MAX_PATH_LENGTH})")
        if "\0" in path:
            errors.append("Path contains null byte")
        if path != path.strip():
            errors.append("Path has leading or trailing whitespace")
        if not is_absolute_path(path):
            errors.append("Path is not absolute")
        if has_traversal_segment(path):
            errors.append("Path contains traversal segment ('..' or '.')")
        if not path.endswith(self.library_suffix):
            errors.append(f"Path does not have the platform library suffix ({self.library_suffix})")
        filename = _SEGMENT_SPLIT_RE.split(path)[-1]
        if not _FILENAME_RE.match(filename):
            errors.append("Filename contains invalid characters")
        return errors

    def is_safe_library_path(self, path: str | None, require_trusted_dir: bool = False) -> bool:
        if self.validation_errors(path):
            return False
        if require_trusted_dir:
            return self.in_trusted_directory(path)
        return True

    def in_trusted_directory(self, path: str | None) -> bool:
        """True if *path* (symlinks resolved) lies inside a trusted directory.

        A missing file is judged by its resolved parent directory; a missing
        parent directory is never trusted.
        """
        if not path:
            return False
        if os.path.exists(path):
            resolved = os.path.realpath(path)
        else:
            parent = os.path.dirname(path)
            if not os.path.isdir(parent):
                return False
            resolved = os.path.join(os.path.realpath(parent), os.path.basename(path))
        for trusted in self.trusted_directories():
            if _is_within(resolved, trusted) or _is_within(resolved, os.path.realpath(trusted)):
                return True
        return False
