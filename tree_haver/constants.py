"""Backend kinds, environment variable names and validation limits."""

from __future__ import annotations

# ── Backend kinds ────────────────────────────────────────────────

BACKEND_AUTO = "auto"
BACKEND_PY_TREE_SITTER = "py_tree_sitter"
BACKEND_LANGUAGE_PACK = "language_pack"
BACKEND_CTYPES = "ctypes"
BACKEND_LARK = "lark"

# Registration slot shared by every native (tree-sitter) backend kind
NATIVE_REGISTRATION_SLOT = "tree_sitter"

# ── Environment variables ────────────────────────────────────────

ENV_BACKEND = "TREE_HAVER_BACKEND"
ENV_DEBUG = "TREE_HAVER_DEBUG"
ENV_TRUSTED_DIRS = "TREE_HAVER_TRUSTED_DIRS"
ENV_TRUST_POLICY = "TREE_HAVER_ENV_TRUST"
ENV_LANG_SYMBOL = "TREE_SITTER_LANG_SYMBOL"
ENV_RUNTIME_LIB = "TREE_SITTER_RUNTIME_LIB"
LANGUAGE_PATH_ENV_TEMPLATE = "TREE_SITTER_{language}_PATH"

# ── Naming conventions ───────────────────────────────────────────

SYMBOL_PREFIX = "tree_sitter_"
LIBRARY_PREFIX = "libtree-sitter-"

# ── Filesystem ───────────────────────────────────────────────────

BASE_SEARCH_DIRS: tuple[str, ...] = (
    "/usr/lib",
    "/usr/lib64",
    "/usr/local/lib",
    "/opt/homebrew/lib",
)

DEFAULT_TRUSTED_DIRECTORIES: tuple[str, ...] = (
    "/usr/lib",
    "/usr/lib64",
    "/usr/lib/x86_64-linux-gnu",
    "/usr/lib/aarch64-linux-gnu",
    "/usr/local/lib",
    "/opt/homebrew/lib",
    "/opt/local/lib",
)

LIBRARY_SUFFIX_LINUX = ".so"
LIBRARY_SUFFIX_DARWIN = ".dylib"
LIBRARY_SUFFIX_WINDOWS = ".dll"

RUNTIME_LIBRARY_CANDIDATES: tuple[str, ...] = (
    "libtree-sitter.so.0",
    "libtree-sitter.so",
    "libtree-sitter.dylib",
    "libtree-sitter.dll",
)

# ── Validation limits and patterns ───────────────────────────────

MAX_PATH_LENGTH = 4096
MAX_LANGUAGE_NAME_LENGTH = 64
MAX_SYMBOL_LENGTH = 256

VALID_FILENAME_PATTERN = r"\A[a-zA-Z0-9][a-zA-Z0-9._-]*\Z"
VALID_LANGUAGE_PATTERN = r"\A[a-z][a-z0-9_]*\Z"
VALID_SYMBOL_PATTERN = r"\A[a-zA-Z_][a-zA-Z0-9_]*\Z"
WINDOWS_ABSOLUTE_PATTERN = r"\A[A-Za-z]:[\\/]"

TRUTHY_VALUES: frozenset[str] = frozenset({"1", "true", "yes", "on"})
