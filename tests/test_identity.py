"""Tests for row key resolution."""

from sqlgrid.grid.identity import RowIdentity
from sqlgrid.grid.result import Column, EditableInfo

COLUMNS = [Column("id"), Column("region"), Column("name")]


def _persist(batch):
    return None


class TestCanEdit:
    """Tests for the editing preconditions."""

    def test_editable_with_everything_present(self):
        info = EditableInfo("people", "main", None, ("id",))
        assert RowIdentity(COLUMNS, info, _persist).can_edit

    def test_no_editable_info(self):
        assert not RowIdentity(COLUMNS, None, _persist).can_edit

    def test_no_persistence(self):
        info = EditableInfo("people", "main", None, ("id",))
        assert not RowIdentity(COLUMNS, info, None).can_edit

    def test_empty_primary_key(self):
        info = EditableInfo("people", "main", None, ())
        assert not RowIdentity(COLUMNS, info, _persist).can_edit

    def test_missing_table_or_schema(self):
        assert not RowIdentity(COLUMNS, EditableInfo("", "main", None, ("id",)), _persist).can_edit
        assert not RowIdentity(COLUMNS, EditableInfo("people", "", None, ("id",)), _persist).can_edit

    def test_primary_key_column_not_in_result(self):
        """A PK column the query did not select disables editing."""
        info = EditableInfo("people", "main", None, ("id", "tenant"))
        assert not RowIdentity(COLUMNS, info, _persist).can_edit


class TestRowKey:
    """Tests for get_row_key and build_index."""

    def test_single_key(self):
        identity = RowIdentity(COLUMNS, EditableInfo("t", "main", None, ("id",)), _persist)
        assert identity.get_row_key({"id": 1, "name": "Alice"}) == "[1]"

    def test_composite_key_in_declared_order(self):
        info = EditableInfo("t", "main", None, ("region", "id"))
        identity = RowIdentity(COLUMNS, info, _persist)
        assert identity.get_row_key({"id": 7, "region": "EU"}) == '["EU",7]'

    def test_string_and_integer_keys_differ(self):
        identity = RowIdentity(COLUMNS, EditableInfo("t", "main", None, ("id",)), _persist)
        assert identity.get_row_key({"id": 1}) != identity.get_row_key({"id": "1"})

    def test_null_key_value(self):
        identity = RowIdentity(COLUMNS, EditableInfo("t", "main", None, ("id",)), _persist)
        assert identity.get_row_key({"id": None}) == "[null]"

    def test_no_key_when_not_editable(self):
        identity = RowIdentity(COLUMNS, None, _persist)
        assert identity.get_row_key({"id": 1}) is None
        assert identity.build_index([{"id": 1}]) == {}

    def test_index_last_duplicate_wins(self):
        identity = RowIdentity(COLUMNS, EditableInfo("t", "main", None, ("id",)), _persist)
        first = {"id": 1, "name": "a"}
        second = {"id": 1, "name": "b"}
        index = identity.build_index([first, second])
        assert index == {"[1]": second}
        assert index["[1]"] is second

    def test_is_primary_key(self):
        identity = RowIdentity(COLUMNS, EditableInfo("t", "main", None, ("id",)), _persist)
        assert identity.is_primary_key("id")
        assert not identity.is_primary_key("name")
