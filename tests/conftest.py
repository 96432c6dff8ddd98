from __future__ import annotations

import os

import pytest

from tests.fakes import GRAMMAR, NATIVE, make_grammar_module, make_native_module
from tree_haver import api, constants
from tree_haver.backend_registry import (
    BackendCategory,
    BackendRegistry,
    BackendTag,
    UnwrapStrategy,
)
from tree_haver.config import HaverConfig
from tree_haver.runtime import Runtime


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for var in list(os.environ):
        if var.startswith(("TREE_HAVER_", "TREE_SITTER_")):
            monkeypatch.delenv(var, raising=False)
    api.reset_default_runtime()
    yield
    api.reset_default_runtime()


@pytest.fixture
def lib_dir(tmp_path):
    path = tmp_path / "lib"
    path.mkdir()
    return path


@pytest.fixture
def trusted_dir(tmp_path):
    path = tmp_path / "trusted"
    path.mkdir()
    return path


@pytest.fixture
def config(lib_dir, trusted_dir) -> HaverConfig:
    return HaverConfig(
        search_directories=(str(lib_dir), str(trusted_dir)),
        trusted_directories=(str(trusted_dir),),
        library_suffix=".so",
    )


@pytest.fixture
def native_module():
    return make_native_module()


@pytest.fixture
def grammar_module():
    return make_grammar_module()


@pytest.fixture
def backends(native_module, grammar_module) -> BackendRegistry:
    registry = BackendRegistry(builtins=False)
    registry.register_backend(
        BackendTag(
            name=NATIVE,
            category=BackendCategory.NATIVE,
            priority=10,
            unwrap=UnwrapStrategy.INNER,
            loads_shared_libraries=True,
        ),
        module=native_module,
    )
    registry.register_backend(
        BackendTag(
            name=GRAMMAR,
            category=BackendCategory.GRAMMAR,
            priority=100,
            unwrap=UnwrapStrategy.GRAMMAR,
        ),
        module=grammar_module,
    )
    return registry


@pytest.fixture
def runtime(config, backends) -> Runtime:
    return Runtime(config=config, backends=backends)


@pytest.fixture
def toy_library(lib_dir) -> str:
    """An (empty) grammar library file for the toy language; fakes never open it."""
    path = lib_dir / f"{constants.LIBRARY_PREFIX}toy.so"
    path.write_bytes(b"")
    return str(path)
