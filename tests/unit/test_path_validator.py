"""Tests for tree_haver.path_validator."""

from __future__ import annotations

import os

import pytest

from tree_haver.config import HaverConfig
from tree_haver.errors import ConfigurationError
from tree_haver.path_validator import (
    PathValidator,
    has_traversal_segment,
    is_safe_language_name,
    is_safe_symbol_name,
    is_windows_absolute_path,
    sanitize_language_name,
)


def _validator(*trusted: str) -> PathValidator:
    return PathValidator(HaverConfig(trusted_directories=trusted, library_suffix=".so"))


class TestLanguageNames:
    @pytest.mark.parametrize("name", ["toml", "c_sharp", "python3", "a"])
    def test_accepts_lowercase_identifiers(self, name):
        assert is_safe_language_name(name)

    @pytest.mark.parametrize("name", ["", "Toml", "3d", "_x", "c-sharp", "a b", None, 42, "x" * 65])
    def test_rejects_everything_else(self, name):
        assert not is_safe_language_name(name)

    def test_sanitize_lowercases_and_strips(self):
        assert sanitize_language_name("C-Sharp!") == "csharp"

    def test_sanitize_returns_none_when_nothing_usable_remains(self):
        assert sanitize_language_name("123") is None
        assert sanitize_language_name(None) is None


class TestSymbolNames:
    def test_accepts_c_identifiers(self):
        assert is_safe_symbol_name("tree_sitter_toml")
        assert is_safe_symbol_name("_private")

    def test_rejects_non_identifiers(self):
        assert not is_safe_symbol_name("tree-sitter-toml")
        assert not is_safe_symbol_name("1abc")
        assert not is_safe_symbol_name("")
        assert not is_safe_symbol_name("a" * 257)


class TestLexicalChecks:
    def test_traversal_segments(self):
        assert has_traversal_segment("/usr/lib/../etc/x.so")
        assert has_traversal_segment("/usr/./lib/x.so")
        assert not has_traversal_segment("/usr/lib/libtree-sitter-x.so")

    def test_windows_absolute(self):
        assert is_windows_absolute_path("C:\\grammars\\x.dll")
        assert is_windows_absolute_path("d:/grammars/x.dll")
        assert not is_windows_absolute_path("/usr/lib/x.so")


class TestIsSafeLibraryPath:
    def test_accepts_absolute_library_path_that_does_not_exist(self):
        assert _validator().is_safe_library_path("/nowhere/libtree-sitter-toml.so")

    @pytest.mark.parametrize(
        "path",
        [
            "",
            "relative/libtree-sitter-toml.so",
            "/usr/lib/../lib/libtree-sitter-toml.so",
            " /usr/lib/libtree-sitter-toml.so",
            "/usr/lib/libtree-sitter-toml.so ",
            "/usr/lib/libtree-sitter-toml.dylib",
            "/usr/lib/libtree-sitter-toml.txt",
            "/usr/lib/lib$(rm).so",
            "/usr/lib/libtree\0-sitter.so",
            "/usr/lib/" + "a" * 4100 + ".so",
        ],
    )
    def test_rejects_unsafe_paths(self, path):
        assert not _validator().is_safe_library_path(path)

    def test_rejects_traversal_even_when_file_exists(self, tmp_path):
        real = tmp_path / "libtree-sitter-toml.so"
        real.write_bytes(b"")
        sneaky = f"{tmp_path}/../{tmp_path.name}/libtree-sitter-toml.so"
        assert os.path.exists(sneaky)
        assert not _validator().is_safe_library_path(sneaky)

    def test_validation_errors_name_every_problem(self):
        errors = _validator().validation_errors("relative/../x.dylib")
        assert "Path is not absolute" in errors
        assert any("traversal" in e for e in errors)
        assert any("suffix" in e for e in errors)

    def test_require_trusted_dir(self, tmp_path):
        trusted = tmp_path / "trusted"
        trusted.mkdir()
        validator = _validator(str(trusted))
        inside = str(trusted / "libtree-sitter-toml.so")
        outside = str(tmp_path / "libtree-sitter-toml.so")
        assert validator.is_safe_library_path(inside, require_trusted_dir=True)
        assert not validator.is_safe_library_path(outside, require_trusted_dir=True)


class TestTrustedDirectories:
    def test_containment_is_by_component_not_prefix(self, tmp_path):
        trusted = tmp_path / "lib"
        lookalike = tmp_path / "lib-evil"
        trusted.mkdir()
        lookalike.mkdir()
        validator = _validator(str(trusted))
        assert validator.in_trusted_directory(str(trusted / "libtree-sitter-x.so"))
        assert not validator.in_trusted_directory(str(lookalike / "libtree-sitter-x.so"))

    def test_symlink_out_of_trusted_directory_is_rejected(self, tmp_path):
        trusted = tmp_path / "trusted"
        elsewhere = tmp_path / "elsewhere"
        trusted.mkdir()
        elsewhere.mkdir()
        target = elsewhere / "libtree-sitter-x.so"
        target.write_bytes(b"")
        link = trusted / "libtree-sitter-x.so"
        link.symlink_to(target)
        assert not _validator(str(trusted)).in_trusted_directory(str(link))

    def test_missing_parent_directory_is_never_trusted(self, tmp_path):
        validator = _validator(str(tmp_path))
        assert not validator.in_trusted_directory(str(tmp_path / "missing" / "x.so"))

    def test_add_remove_and_clear_custom_directories(self, tmp_path):
        validator = _validator()
        validator.add_trusted_directory(str(tmp_path))
        assert str(tmp_path) in validator.trusted_directories()
        assert validator.custom_trusted_directories() == [str(tmp_path)]
        validator.remove_trusted_directory(str(tmp_path))
        assert validator.custom_trusted_directories() == []
        validator.add_trusted_directory(str(tmp_path))
        validator.clear_custom_trusted_directories()
        assert str(tmp_path) not in validator.trusted_directories()

    def test_add_rejects_relative_directory(self):
        with pytest.raises(ConfigurationError):
            _validator().add_trusted_directory("relative/dir")

    def test_environment_directories_are_included(self, tmp_path):
        config = HaverConfig(trusted_directories=(), env_trusted_directories=(str(tmp_path),))
        assert PathValidator(config).trusted_directories() == [str(tmp_path)]

    def test_instances_do_not_share_custom_directories(self, tmp_path):
        first, second = _validator(), _validator()
        first.add_trusted_directory(str(tmp_path))
        assert second.custom_trusted_directories() == []
