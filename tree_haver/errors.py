"""Exception taxonomy shared by every layer."""

from __future__ import annotations


class TreeHaverError(Exception):
    """Base class for all tree_haver errors."""


class NotAvailable(TreeHaverError):
    """A requested backend, grammar or capability cannot be provided."""


class ConfigurationError(TreeHaverError, ValueError):
    """Invalid language name, unsafe path or symbol, malformed registration."""


class BackendMismatch(TreeHaverError):
    """A language loaded for one backend cannot be used by the active one."""


class BackendConflict(TreeHaverError):
    """A backend is blocked by another backend already used in this process."""
