"""Locates an in-process grammar object inside an importable module."""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from . import constants
from .errors import NotAvailable

if TYPE_CHECKING:
    from .runtime import Runtime

logger = logging.getLogger(__name__)

_UNRESOLVED = object()


class ModuleSearchInfo(BaseModel):
    language: str
    module_path: str
    grammar_attr: str
    backend_kind: str
    available: bool = False
    error: str | None = None


class GrammarModuleFinder:
    """Resolves ``module_path`` + dotted ``grammar_attr`` to an object with ``parse``.

    The lookup runs once; the result (or the reason it failed) is kept.
    """

    def __init__(
        self,
        language: str,
        module_path: str,
        grammar_attr: str,
        backend_kind: str = constants.BACKEND_LARK,
        runtime: Runtime | None = None,
    ):
        if runtime is None:
            from .api import default_runtime

            runtime = default_runtime()
        self._runtime = runtime
        self.language = language
        self.module_path = module_path
        self.grammar_attr = grammar_attr
        self.backend_kind = backend_kind
        self.load_error: str | None = None
        self._grammar: Any = _UNRESOLVED

    def _resolve(self) -> Any:
        try:
            target = importlib.import_module(self.module_path)
            for part in self.grammar_attr.split("."):
                target = getattr(target, part)
        except (ImportError, AttributeError) as err:
            self.load_error = f"{type(err).__name__}: {err}"
            logger.debug("Grammar %s:%s not loadable: %s", self.module_path, self.grammar_attr, err)
            return None
        if not callable(getattr(target, "parse", None)):
            self.load_error = f"{self.module_path}:{self.grammar_attr} has no parse method"
            return None
        return target

    def grammar(self) -> Any:
        if self._grammar is _UNRESOLVED:
            self._grammar = self._resolve()
        return self._grammar

    def is_available(self) -> bool:
        return self.grammar() is not None

    def register(self, raise_on_missing: bool = False) -> bool:
        grammar = self.grammar()
        if grammar is None:
            if raise_on_missing:
                raise NotAvailable(self.not_found_message())
            return False
        self._runtime.register_language(
            self.language,
            grammar=grammar,
            grammar_backend=self.backend_kind,
            source_identifier=f"{self.module_path}:{self.grammar_attr}",
        )
        return True

    def search_info(self) -> ModuleSearchInfo:
        return ModuleSearchInfo(
            language=self.language,
            module_path=self.module_path,
            grammar_attr=self.grammar_attr,
            backend_kind=self.backend_kind,
            available=self.is_available(),
            error=self.load_error,
        )

    def not_found_message(self) -> str:
        reason = f" ({self.load_error})" if self.load_error else ""
        return (
            f"{self.language} grammar not found at {self.module_path}:{self.grammar_attr}{reason}. "
            f"Install the package providing {self.module_path}."
        )
