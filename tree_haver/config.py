"""Runtime configuration (pure data, read once from the environment)."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from . import constants


class TrustPolicy(str, Enum):
    """How far a grammar path taken from the environment is trusted."""

    # Character-class and traversal checks only; any directory is accepted.
    CHARACTER_CHECK = "character_check"
    # Environment paths must also live inside a trusted directory.
    TRUSTED_DIRECTORIES = "trusted_directories"


def platform_library_suffix(platform: str = "") -> str:
    """Return the native shared-library suffix for *platform* (default: this OS)."""
    platform = platform or sys.platform
    if platform == "darwin":
        return constants.LIBRARY_SUFFIX_DARWIN
    if platform.startswith(("win32", "cygwin", "msys")):
        return constants.LIBRARY_SUFFIX_WINDOWS
    return constants.LIBRARY_SUFFIX_LINUX


def _is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in constants.TRUTHY_VALUES


def _split_dirs(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    dirs = (os.path.expanduser(part.strip()) for part in value.split(","))
    return tuple(d for d in dirs if d and os.path.isabs(d))


@dataclass(frozen=True)
class HaverConfig:
    """Groups discovery, trust and backend-selection settings."""

    backend: str = constants.BACKEND_AUTO
    debug: bool = False
    env_trust_policy: TrustPolicy = TrustPolicy.CHARACTER_CHECK
    search_directories: tuple[str, ...] = constants.BASE_SEARCH_DIRS
    trusted_directories: tuple[str, ...] = constants.DEFAULT_TRUSTED_DIRECTORIES
    env_trusted_directories: tuple[str, ...] = ()
    library_suffix: str = field(default_factory=platform_library_suffix)
    backend_protect: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> HaverConfig:
        """Build a config from ``TREE_HAVER_*`` environment variables.

        Unknown trust policies fall back to the default rather than failing, so
        a typo in the environment never disables discovery altogether.
        """
        env = os.environ if environ is None else environ
        policy_raw = (env.get(constants.ENV_TRUST_POLICY) or "").strip().lower()
        try:
            policy = TrustPolicy(policy_raw) if policy_raw else TrustPolicy.CHARACTER_CHECK
        except ValueError:
            policy = TrustPolicy.CHARACTER_CHECK
        backend = (env.get(constants.ENV_BACKEND) or "").strip().lower()
        return cls(
            backend=backend or constants.BACKEND_AUTO,
            debug=_is_truthy(env.get(constants.ENV_DEBUG)),
            env_trust_policy=policy,
            env_trusted_directories=_split_dirs(env.get(constants.ENV_TRUSTED_DIRS)),
        )
