"""End-to-end tests against real tree-sitter grammars from tree-sitter-language-pack."""

from __future__ import annotations

import types

import pytest

pytest.importorskip("tree_sitter")
pytest.importorskip("tree_sitter_language_pack")

from tests.fakes import GRAMMAR  # noqa: E402
from tree_haver import constants  # noqa: E402
from tree_haver.backends import BUILTIN_BACKENDS, language_pack  # noqa: E402
from tree_haver.config import HaverConfig  # noqa: E402
from tree_haver.errors import NotAvailable  # noqa: E402
from tree_haver.parser import Parser  # noqa: E402
from tree_haver.point import Point  # noqa: E402
from tree_haver.runtime import Runtime  # noqa: E402

PACK = constants.BACKEND_LANGUAGE_PACK


@pytest.fixture
def runtime() -> Runtime:
    return Runtime(config=HaverConfig(search_directories=()))


@pytest.fixture
def parser(runtime) -> Parser:
    parser = Parser(backend=PACK, runtime=runtime)
    parser.language = runtime.bundled_language("python")
    return parser


class TestPythonGrammar:
    def test_parse_assignment(self, parser):
        tree = parser.parse("x = 1\n")
        root = tree.root_node
        assert root.type == "module"
        assignment = root.child(0).child(0)
        assert assignment.type == "assignment"
        assert assignment.child_by_field_name("left").text == "x"
        assert assignment.child_by_field_name("right").text == "1"
        assert assignment.child_by_field_name("right").start_point == Point(0, 4)
        assert not tree.has_error

    def test_syntax_error_is_reported_in_tree(self, parser):
        assert parser.parse("def (:\n").has_error

    def test_incremental_reparse(self, parser):
        tree = parser.parse("x = 1\n")
        tree.edit(
            start_byte=4,
            old_end_byte=5,
            new_end_byte=6,
            start_point=(0, 4),
            old_end_point=(0, 5),
            new_end_point=(0, 6),
        )
        new_tree = parser.parse_string(tree, "x = 42\n")
        right = new_tree.root_node.child(0).child(0).child_by_field_name("right")
        assert right.text == "42"
        assert (right.start_byte, right.end_byte) == (4, 6)

    def test_capabilities(self, runtime):
        caps = runtime.capabilities(PACK)
        assert caps.incremental
        assert caps.editing
        assert caps.field_lookup
        assert caps.details["bundled_grammars"] is True

    def test_unknown_bundled_language(self, runtime):
        with pytest.raises(NotAvailable):
            runtime.bundled_language("no_such_language_xyz")


class TestParserFor:
    def test_bundled_grammar_is_used_when_no_library_is_found(self, runtime):
        with runtime.with_backend(PACK):
            parser = runtime.parser_for("python")
        assert parser.backend == PACK
        assert parser.parse("y = 2\n").root_node.type == "module"


class _PackError(Exception):
    pass


def _failing_pack(name):
    raise _PackError(f"cannot download {name}")


class TestPackFailures:
    @pytest.fixture
    def pack_runtime(self, config, backends, monkeypatch) -> Runtime:
        monkeypatch.setattr(
            language_pack,
            "tslp",
            types.SimpleNamespace(Error=_PackError, get_language=_failing_pack, get_parser=_failing_pack),
        )
        pack_tag = next(tag for tag in BUILTIN_BACKENDS if tag.name == PACK)
        backends.register_backend(pack_tag, module=language_pack)
        return Runtime(config=config, backends=backends)

    def test_pack_errors_become_not_available(self, pack_runtime):
        with pytest.raises(NotAvailable, match="cannot download toy"):
            pack_runtime.bundled_language("toy", PACK)

    def test_parser_falls_through_to_grammar_module(self, pack_runtime):
        parser = pack_runtime.parser_for(
            "toy",
            grammar_config={
                "module_path": "tests.fakes",
                "grammar_attr": "toy_grammars.toy",
                "backend_kind": GRAMMAR,
            },
        )
        assert parser.backend == GRAMMAR
        assert parser.parse("x = 1").root_node.type == "program"
