"""Tests for GrammarModuleFinder."""

from __future__ import annotations

import pytest

from tests.fakes import GRAMMAR, toy_grammars
from tree_haver.errors import NotAvailable
from tree_haver.grammar_module_finder import GrammarModuleFinder


def _finder(runtime, attr: str = "toy_grammars.toy", module: str = "tests.fakes") -> GrammarModuleFinder:
    return GrammarModuleFinder("toy", module, attr, backend_kind=GRAMMAR, runtime=runtime)


class TestLookup:
    def test_resolves_dotted_attribute(self, runtime):
        finder = _finder(runtime)
        assert finder.grammar() is toy_grammars.toy
        assert finder.is_available()
        assert finder.load_error is None

    def test_missing_module(self, runtime):
        finder = _finder(runtime, module="tree_haver_no_such_grammars")
        assert finder.grammar() is None
        assert "ModuleNotFoundError" in finder.load_error

    def test_missing_attribute(self, runtime):
        finder = _finder(runtime, attr="toy_grammars.missing")
        assert not finder.is_available()
        assert "AttributeError" in finder.load_error

    def test_object_without_parse(self, runtime):
        finder = _finder(runtime, attr="toy_grammars.not_a_grammar")
        assert finder.grammar() is None
        assert "no parse method" in finder.load_error

    def test_lookup_runs_once(self, runtime, monkeypatch):
        finder = _finder(runtime)
        finder.grammar()
        monkeypatch.setattr(toy_grammars, "toy", None)
        assert finder.grammar() is not None


class TestRegister:
    def test_registers_grammar_with_source_identifier(self, runtime):
        assert _finder(runtime).register() is True
        registration = runtime.languages.registered("toy", GRAMMAR)
        assert registration.grammar is toy_grammars.toy
        assert registration.source_identifier == "tests.fakes:toy_grammars.toy"
        assert runtime.load_language("toy", backend=GRAMMAR).grammar is toy_grammars.toy

    def test_missing_grammar(self, runtime):
        finder = _finder(runtime, attr="toy_grammars.missing")
        assert finder.register() is False
        with pytest.raises(NotAvailable, match="tests.fakes:toy_grammars.missing"):
            finder.register(raise_on_missing=True)

    def test_search_info(self, runtime):
        info = _finder(runtime, attr="toy_grammars.not_a_grammar").search_info()
        assert info.backend_kind == GRAMMAR
        assert not info.available
        assert "no parse method" in info.error
