"""Language registration records, validated on construction."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .library_path_utils import derive_symbol_from_path
from .path_validator import is_safe_symbol_name


class LibraryRegistration(BaseModel):
    """A grammar compiled into a shared library, for native backends."""

    model_config = ConfigDict(frozen=True)

    library_path: str
    symbol: str

    @model_validator(mode="before")
    @classmethod
    def _default_symbol(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("symbol"):
            data = {**data, "symbol": derive_symbol_from_path(data.get("library_path"))}
        return data

    @field_validator("library_path")
    @classmethod
    def _non_empty_path(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("library_path must be a non-empty path")
        return value

    @field_validator("symbol")
    @classmethod
    def _safe_symbol(cls, value: str) -> str:
        if not is_safe_symbol_name(value):
            raise ValueError(f"symbol must be a valid C identifier, got {value!r}")
        return value


class GrammarRegistration(BaseModel):
    """An in-process grammar object, for grammar backends."""

    model_config = ConfigDict(frozen=True)

    grammar: Any
    # Where the grammar came from (a module path, a package name); diagnostics only
    source_identifier: str | None = None

    @field_validator("grammar")
    @classmethod
    def _parseable(cls, value: Any) -> Any:
        if not callable(getattr(value, "parse", None)):
            raise ValueError(
                f"grammar must expose a callable parse(source), got {type(value).__name__}"
            )
        return value


Registration = Union[LibraryRegistration, GrammarRegistration]
