"""End-to-end tests for the lark grammar backend through the unified API."""

from __future__ import annotations

import pytest

lark = pytest.importorskip("lark")

from tree_haver import backend_api, constants  # noqa: E402
from tree_haver.backends import lark_grammar  # noqa: E402
from tree_haver.config import HaverConfig  # noqa: E402
from tree_haver.errors import NotAvailable, TreeHaverError  # noqa: E402
from tree_haver.parser import Parser  # noqa: E402
from tree_haver.point import Point  # noqa: E402
from tree_haver.runtime import Runtime  # noqa: E402

ASSIGNMENTS = r"""
start: assignment+
assignment: NAME "=" NUMBER

NAME: /[^\W\d]\w*/
NUMBER: /\d+/

%import common.WS
%ignore WS
"""


@pytest.fixture
def grammar():
    return lark.Lark(ASSIGNMENTS, parser="lalr", propagate_positions=True)


@pytest.fixture
def runtime() -> Runtime:
    return Runtime(config=HaverConfig(search_directories=()))


@pytest.fixture
def parser(runtime, grammar) -> Parser:
    parser = Parser(backend=constants.BACKEND_LARK, runtime=runtime)
    parser.language = runtime.language_from_grammar(grammar, "assignments")
    return parser


class TestConformance:
    def test_module_satisfies_backend_contract(self):
        report = backend_api.validate(lark_grammar)
        assert report.valid, report.errors

    def test_capabilities(self, runtime):
        caps = runtime.capabilities(constants.BACKEND_LARK)
        assert not caps.incremental
        assert not caps.editing
        assert not caps.native_library
        assert caps.details["pure_python"] is True

    def test_nodes_satisfy_node_contract(self, parser):
        root = parser.parse("x = 1").root_node
        report = backend_api.validate_node_instance(root.inner_node)
        assert report.valid, report.errors


class TestParse:
    def test_tree_shape(self, parser):
        root = parser.parse("x = 1").root_node
        assert root.type == "start"
        assignment = root.child(0)
        assert assignment.type == "assignment"
        assert [c.type for c in assignment.children] == ["NAME", "NUMBER"]
        assert assignment.child(0).text == "x"
        assert assignment.child(1).text == "1"

    def test_spans_and_points(self, parser):
        root = parser.parse("x = 1\nyy = 22").root_node
        second = root.child(1)
        assert (second.start_byte, second.end_byte) == (6, 13)
        assert second.start_point == Point(1, 0)
        assert second.end_point == Point(1, 7)
        assert second.text == "yy = 22"

    def test_byte_offsets_for_non_ascii_source(self, parser):
        number = parser.parse("é = 1").root_node.child(0).child(1)
        assert (number.start_byte, number.end_byte) == (5, 6)
        assert number.text == "1"

    def test_relatives(self, parser):
        assignment = parser.parse("x = 1").root_node.child(0)
        name = assignment.child(0)
        assert name.parent == assignment
        assert name.next_sibling.type == "NUMBER"
        assert name.prev_sibling is None
        assert name.child_by_field_name("left") is None

    def test_nodes_order_by_position(self, parser):
        root = parser.parse("a = 1 b = 2").root_node
        first, second = root.children
        assert sorted([second, first]) == [first, second]

    def test_syntax_error(self, parser):
        with pytest.raises(TreeHaverError, match="Lark parse failed"):
            parser.parse("x = ")

    def test_no_incremental_reparse(self, parser):
        tree = parser.parse("x = 1")
        assert not tree.has_error
        with pytest.raises(NotAvailable, match="Incremental parsing not supported by the lark backend"):
            tree.edit(4, 5, 6, (0, 4), (0, 5), (0, 6))
        reparsed = parser.parse_string(tree, "x = 42")
        assert reparsed.root_node.child(0).child(1).text == "42"


class TestRegisteredGrammar:
    def test_parser_for_uses_registered_grammar(self, runtime, grammar):
        runtime.register_language("assignments", grammar=grammar)
        with runtime.with_backend(constants.BACKEND_LARK):
            parser = runtime.parser_for("assignments")
        assert parser.backend == constants.BACKEND_LARK
        assert parser.parse("x = 1").root_node.type == "start"

    def test_auto_parser_switches_to_lark_for_grammar_handles(self, runtime, grammar):
        handle = runtime.language_from_grammar(grammar, "assignments")
        parser = Parser(runtime=runtime)
        parser.language = handle
        assert parser.backend == constants.BACKEND_LARK
