"""Source positions shared by every backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Mapping


@dataclass(frozen=True, order=True)
class Point:
    """A zero-based (row, column) source position.

    Supports attribute access (``p.row``), index access (``p[0]``), key
    access (``p["row"]``), unpacking and comparison, so downstream code never
    has to care whether a backend produced a struct, a tuple or a mapping.
    """

    row: int
    column: int

    def __getitem__(self, key: int | str) -> int:
        if key in (0, "row"):
            return self.row
        if key in (1, "column"):
            return self.column
        raise KeyError(key)

    def __iter__(self) -> Iterator[int]:
        yield self.row
        yield self.column

    def __len__(self) -> int:
        return 2

    def to_dict(self) -> dict[str, int]:
        return {"row": self.row, "column": self.column}

    def __str__(self) -> str:
        return f"({self.row}, {self.column})"

    @classmethod
    def coerce(cls, value: Any) -> Point:
        """Normalize a backend position value into a Point."""
        if isinstance(value, Point):
            return value
        if isinstance(value, Mapping):
            return cls(int(value["row"]), int(value["column"]))
        if hasattr(value, "row") and hasattr(value, "column"):
            return cls(int(value.row), int(value.column))
        row, column = value
        return cls(int(row), int(column))

    @classmethod
    def from_byte_offset(cls, source: bytes, offset: int) -> Point:
        """Compute the position of byte *offset* in *source* (column in bytes)."""
        if offset <= 0:
            return cls(0, 0)
        prefix = source[:offset]
        line_start = prefix.rfind(b"\n") + 1
        return cls(prefix.count(b"\n"), offset - line_start)
