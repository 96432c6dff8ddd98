"""Built-in parsing backends.

Each backend lives in its own module and is imported lazily by the backend
registry, so a missing engine only surfaces when that backend is probed.
"""

from __future__ import annotations

from .. import constants
from ..backend_registry import BackendCategory, BackendTag, UnwrapStrategy

BUILTIN_BACKENDS: tuple[BackendTag, ...] = (
    BackendTag(
        name=constants.BACKEND_PY_TREE_SITTER,
        category=BackendCategory.NATIVE,
        module_path=f"{__name__}.py_tree_sitter",
        priority=10,
        unwrap=UnwrapStrategy.INNER,
        loads_shared_libraries=True,
    ),
    BackendTag(
        name=constants.BACKEND_LANGUAGE_PACK,
        category=BackendCategory.NATIVE,
        module_path=f"{__name__}.language_pack",
        priority=20,
        unwrap=UnwrapStrategy.NAME,
        loads_shared_libraries=False,
    ),
    BackendTag(
        name=constants.BACKEND_CTYPES,
        category=BackendCategory.NATIVE,
        module_path=f"{__name__}.ctypes_runtime",
        priority=30,
        unwrap=UnwrapStrategy.HANDLE,
        loads_shared_libraries=True,
        # Two tree-sitter runtimes in one process can resolve grammar
        # symbols against the wrong copy.
        blocked_by=(constants.BACKEND_PY_TREE_SITTER,),
    ),
    BackendTag(
        name=constants.BACKEND_LARK,
        category=BackendCategory.GRAMMAR,
        module_path=f"{__name__}.lark_grammar",
        priority=100,
        unwrap=UnwrapStrategy.GRAMMAR,
    ),
)

SUPPORTED_BACKENDS: tuple[str, ...] = tuple(tag.name for tag in BUILTIN_BACKENDS)

__all__ = ["BUILTIN_BACKENDS", "SUPPORTED_BACKENDS"]
