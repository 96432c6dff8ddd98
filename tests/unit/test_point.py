"""Tests for the Point value type."""

import pytest

from tree_haver.point import Point


class TestPointAccess:
    def test_attribute_index_and_key_access_agree(self):
        p = Point(3, 7)
        assert (p.row, p.column) == (3, 7)
        assert (p[0], p[1]) == (3, 7)
        assert (p["row"], p["column"]) == (3, 7)

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            Point(0, 0)["line"]

    def test_unpacking_and_dict(self):
        row, column = Point(1, 2)
        assert (row, column) == (1, 2)
        assert Point(1, 2).to_dict() == {"row": 1, "column": 2}

    def test_ordering(self):
        assert Point(0, 9) < Point(1, 0)
        assert sorted([Point(2, 0), Point(0, 5), Point(0, 1)]) == [Point(0, 1), Point(0, 5), Point(2, 0)]


class TestCoerce:
    def test_from_tuple_mapping_and_object(self):
        class Struct:
            row = 4
            column = 2

        assert Point.coerce((4, 2)) == Point(4, 2)
        assert Point.coerce({"row": 4, "column": 2}) == Point(4, 2)
        assert Point.coerce(Struct()) == Point(4, 2)

    def test_point_passes_through(self):
        p = Point(1, 1)
        assert Point.coerce(p) is p


class TestFromByteOffset:
    def test_counts_rows_and_byte_columns(self):
        source = b"ab\ncde\nf"
        assert Point.from_byte_offset(source, 0) == Point(0, 0)
        assert Point.from_byte_offset(source, 2) == Point(0, 2)
        assert Point.from_byte_offset(source, 3) == Point(1, 0)
        assert Point.from_byte_offset(source, 5) == Point(1, 2)
        assert Point.from_byte_offset(source, 8) == Point(2, 1)
