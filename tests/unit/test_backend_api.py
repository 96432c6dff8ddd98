"""Tests for the backend conformance checker."""

from __future__ import annotations

import types

import pytest

from tests.fakes import AliasNode, BareNode, FakeNode, make_grammar_module, make_native_module
from tree_haver import backend_api
from tree_haver.errors import TreeHaverError


def _module(**attrs) -> types.ModuleType:
    module = types.ModuleType("candidate")
    for name, value in attrs.items():
        setattr(module, name, value)
    return module


class TestValidate:
    def test_complete_native_module_is_valid(self):
        report = backend_api.validate(make_native_module())
        assert report.valid, report.errors
        assert report.errors == []
        assert report.capabilities["parser"]["optional"] == ["parse_string"]
        assert "from_library" in report.capabilities["language"]["factories"]

    def test_grammar_module_is_valid_without_node_class(self):
        report = backend_api.validate(make_grammar_module())
        assert report.valid, report.errors
        assert any("No Node class" in w for w in report.warnings)

    def test_missing_pieces_are_errors(self):
        report = backend_api.validate(_module())
        assert not report.valid
        assert "Missing module function: available" in report.errors
        assert "Missing Language class" in report.errors
        assert "Missing Parser class" in report.errors

    def test_language_without_factory(self):
        class Language:
            pass

        report = backend_api.validate(
            _module(available=lambda: True, Language=Language, Parser=make_native_module().Parser)
        )
        assert any("factory" in e for e in report.errors)

    def test_parser_without_parse_string_only_warns(self):
        module = make_native_module(incremental=False)
        report = backend_api.validate(module)
        assert report.valid
        assert "Parser missing optional method: parse_string" in report.warnings

    def test_strict_mode_promotes_missing_optional_node_methods(self):
        module = make_native_module()
        module.Node = BareNode
        lenient = backend_api.validate(module)
        strict = backend_api.validate(module, strict=True)
        assert lenient.valid
        assert not strict.valid
        assert "Node missing optional method: parent" in strict.errors

    def test_node_aliases_satisfy_required_methods(self):
        module = make_native_module()
        module.Node = AliasNode
        report = backend_api.validate(module)
        assert report.valid, report.errors
        assert "type" in report.capabilities["node"]["required"]
        assert "start_point" in report.capabilities["node"]["optional"]

    def test_validate_or_raise(self):
        with pytest.raises(TreeHaverError, match="API validation failed"):
            backend_api.validate_or_raise(_module())
        assert backend_api.validate_or_raise(make_native_module()).valid


class TestValidateNodeInstance:
    def test_full_node(self):
        report = backend_api.validate_node_instance(FakeNode("x", 0, 1))
        assert report.valid
        assert report.unsupported_methods == []

    def test_alias_node_reports_gaps(self):
        report = backend_api.validate_node_instance(AliasNode("x", 0, 1))
        assert report.valid
        assert "type" in report.supported_methods
        assert "text" in report.unsupported_methods
        assert "parent" in report.unsupported_methods

    def test_missing_required(self):
        report = backend_api.validate_node_instance(object())
        assert not report.valid
        assert "Missing required method: type" in report.errors


class TestResolveAlias:
    def test_canonical_name_wins(self):
        class Both:
            type = "canonical"
            kind = "alias"

        assert backend_api.resolve_alias(Both(), "type") == "type"

    def test_alias_used_when_canonical_missing(self):
        assert backend_api.resolve_alias(AliasNode("x", 0, 1), "type") == "kind"
        assert backend_api.resolve_alias(AliasNode("x", 0, 1), "is_named") == "named"

    def test_nothing_resolves(self):
        assert backend_api.resolve_alias(object(), "text") is None
