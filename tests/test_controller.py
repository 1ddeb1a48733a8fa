"""Tests for ResultGridController: editing, save and revert."""

from unittest.mock import Mock

import pytest

from sqlgrid.grid.controller import ResultGridController, SaveBatch
from sqlgrid.grid.result import Column, EditableInfo, QueryOutcome, ResultSet
from sqlgrid.grid.session import KEY_ENTER, KEY_ESCAPE


def _row(controller, index=0):
    return controller.base_rows[index]


def _key(controller, index=0):
    return controller.get_row_key(_row(controller, index))


class TestLoad:
    """Tests for loading outcomes."""

    def test_editable_result(self, controller):
        assert controller.can_edit
        assert controller.primary_key_columns == ("id",)
        assert _key(controller) == "[1]"
        assert controller.status_text() == "2 rows in 12 ms [Editable]"

    def test_not_editable_without_persistence(self, people):
        controller = ResultGridController()
        controller.load(people)
        assert not controller.can_edit
        assert controller.get_row_key(_row(controller)) is None

    def test_set_persistence_enables_editing(self, people, persistence):
        controller = ResultGridController()
        controller.load(people)
        controller.set_persistence(persistence)
        assert controller.can_edit

    def test_plain_callable_persistence(self, people):
        sent = []
        controller = ResultGridController(sent.append)
        controller.load(people)
        controller.set_cell("[1]", "name", "Al", _row(controller))
        assert controller.save()
        assert len(sent) == 1

    def test_mock_backend_is_called_directly(self, people):
        """A callable backend is called itself, never an attribute of it."""
        backend = Mock(side_effect=RuntimeError("constraint violation"))
        controller = ResultGridController(backend)
        controller.load(people)
        controller.set_cell("[2]", "name", "Bobby", _row(controller, 1))

        assert not controller.save()
        assert backend.call_count == 1
        assert controller.save_error == "constraint violation"
        assert _row(controller, 1) == {"id": 2, "name": "Bob"}

    def test_backend_with_save_method(self, people, persistence):
        controller = ResultGridController(persistence)
        controller.load(people)
        controller.set_cell("[2]", "name", "Bobby", _row(controller, 1))
        assert controller.save()
        assert len(persistence.batches) == 1

    def test_invalid_persistence(self):
        with pytest.raises(TypeError):
            ResultGridController(object())

    def test_load_discards_edits(self, controller, people):
        controller.set_cell("[1]", "name", "Al", _row(controller))
        controller.start_edit(_row(controller, 1), "name")
        controller.load(people)
        assert not controller.has_edits()
        assert controller.session is None

    def test_clear(self, controller):
        controller.clear()
        assert controller.columns == ()
        assert controller.filtered_rows == ()
        assert controller.status_text() == "Execute a query to see results"

    def test_listeners(self, controller):
        calls = []
        controller.add_listener(lambda: calls.append(1))
        controller.set_cell("[1]", "name", "Al", _row(controller))
        assert calls == [1]
        controller.remove_listener(controller._listeners[0])
        controller.revert()
        assert calls == [1]


class TestCellEdits:
    """Tests for display and dirty state."""

    def test_display_value_prefers_pending(self, controller):
        row = _row(controller)
        controller.set_cell("[1]", "name", "Al", row)
        assert controller.display_value(row, "name") == "Al"
        assert controller.display_text(row, "name") == "Al"
        assert controller.is_dirty(row, "name")
        assert not controller.is_dirty(row, "id")

    def test_base_rows_untouched_by_edits(self, controller):
        row = _row(controller)
        controller.set_cell("[1]", "name", "Al", row)
        assert row["name"] == "Alice"

    def test_restoring_value_clears_dirty(self, controller):
        row = _row(controller)
        controller.set_cell("[1]", "name", "Al", row)
        controller.set_cell("[1]", "name", "Alice", row)
        assert not controller.has_edits()
        assert not controller.can_save

    def test_set_cell_ignored_when_not_editable(self, people):
        controller = ResultGridController()
        controller.load(people)
        controller.set_cell("[1]", "name", "Al", _row(controller))
        assert not controller.has_edits()


class TestEditSession:
    """Tests for the editor workflow through the controller."""

    def test_enter_commits(self, controller):
        session = controller.start_edit(_row(controller), "name")
        assert controller.is_editing("[1]", "name")
        assert controller.editor_key(session, KEY_ENTER, value="Al")
        assert controller.edits.get_cell("[1]", "name") == "Al"
        assert controller.session is None

    def test_enter_then_blur_applies_once(self, controller):
        calls = []
        session = controller.start_edit(_row(controller), "name")
        controller.add_listener(lambda: calls.append(1))
        controller.editor_key(session, KEY_ENTER, value="Al")
        assert not controller.editor_blur(session, False, "Al")
        assert calls == [1]

    def test_escape_discards_typed_value(self, controller):
        session = controller.start_edit(_row(controller), "name")
        controller.editor_key(session, KEY_ESCAPE, value="typed")
        assert not controller.has_edits()

    def test_escape_reverts_pending_cell(self, controller):
        """Escape restores the base value, dropping an earlier pending edit."""
        row = _row(controller)
        controller.set_cell("[1]", "name", "Al", row)
        session = controller.start_edit(row, "name")
        assert session.initial_value == "Al"
        controller.cancel_edit(session)
        assert not controller.has_edits()

    def test_blur_commits(self, controller):
        session = controller.start_edit(_row(controller), "name")
        controller.editor_blur(session, False, "Ally")
        assert controller.edits.get_cell("[1]", "name") == "Ally"

    def test_opening_another_cell_commits_the_first(self, controller):
        """Moving the editor to another cell keeps what was typed."""
        first = controller.start_edit(_row(controller), "name")
        controller.update_edit(first, "Alicia")
        second = controller.start_edit(_row(controller, 1), "name")
        assert controller.edits.get_cell("[1]", "name") == "Alicia"
        assert controller.session is second
        assert not controller.editor_blur(first, False, "other")

    def test_reopening_same_cell_keeps_session(self, controller):
        session = controller.start_edit(_row(controller), "name")
        controller.update_edit(session, "Al")
        assert controller.start_edit(_row(controller), "name") is session
        assert not controller.has_edits()

    def test_no_session_when_not_editable(self, people):
        controller = ResultGridController()
        controller.load(people)
        assert controller.start_edit(_row(controller), "name") is None

    def test_close_editor(self, controller):
        controller.start_edit(_row(controller), "name")
        controller.close_editor()
        assert controller.session is None
        assert not controller.has_edits()


class TestSave:
    """Tests for the save workflow."""

    def test_success_merges_into_base(self, controller, persistence):
        controller.set_cell("[1]", "name", "Alicia", _row(controller))
        assert controller.save()

        batch = persistence.batches[0]
        assert batch.table_name == "people"
        assert batch.schema_name == "main"
        assert batch.database_name is None
        assert batch.primary_key_columns == ("id",)
        assert [(u.row_key, u.changes) for u in batch.updates] == [("[1]", {"name": "Alicia"})]
        assert batch.updates[0].row == {"id": 1, "name": "Alice"}

        assert _row(controller) == {"id": 1, "name": "Alicia"}
        assert not controller.has_edits()
        assert not controller.is_saving
        assert controller.save_error is None

    def test_only_edited_rows_are_sent(self, controller, persistence):
        controller.set_cell("[2]", "name", "Robert", _row(controller, 1))
        controller.save()
        assert [u.row_key for u in persistence.batches[0].updates] == ["[2]"]

    def test_failure_keeps_edits(self, failing_controller):
        controller = failing_controller
        controller.set_cell("[1]", "name", "Alicia", _row(controller))

        assert not controller.save()
        assert controller.save_error == "constraint violation"
        assert controller.edits.get_cell("[1]", "name") == "Alicia"
        assert _row(controller)["name"] == "Alice"
        assert not controller.is_saving
        assert controller.can_save

    def test_nothing_to_save_never_calls_backend(self, controller, persistence):
        assert not controller.save()
        assert controller.begin_save() is None
        assert persistence.batches == []

    def test_begin_save_marks_in_flight(self, controller):
        controller.set_cell("[1]", "name", "Al", _row(controller))
        batch = controller.begin_save()
        assert isinstance(batch, SaveBatch)
        assert controller.is_saving
        assert not controller.can_save
        assert controller.begin_save() is None

    def test_revert_ignored_while_saving(self, controller):
        controller.set_cell("[1]", "name", "Al", _row(controller))
        controller.begin_save()
        controller.revert()
        assert controller.has_edits()

    def test_edit_during_save_survives(self, controller):
        """Cells edited while a save is in flight stay pending afterwards."""
        controller.set_cell("[1]", "name", "Al", _row(controller))
        batch = controller.begin_save()
        controller.set_cell("[2]", "name", "Robert", _row(controller, 1))
        controller.complete_save(batch)
        assert controller.edits.to_dict() == {"[2]": {"name": "Robert"}}
        assert _row(controller)["name"] == "Al"

    def test_cell_re_edited_during_save_stays_dirty(self, controller):
        controller.set_cell("[1]", "name", "Al", _row(controller))
        batch = controller.begin_save()
        controller.set_cell("[1]", "name", "Alicia", _row(controller))
        controller.complete_save(batch)
        row = _row(controller)
        assert row["name"] == "Al"
        assert controller.edits.get_cell("[1]", "name") == "Alicia"
        assert controller.is_dirty(row, "name")

    def test_completion_after_reload_is_ignored(self, controller, people):
        controller.set_cell("[1]", "name", "Al", _row(controller))
        batch = controller.begin_save()
        controller.load(people)
        controller.complete_save(batch)
        assert _row(controller)["name"] == "Alice"
        controller.fail_save(RuntimeError("late"), batch)
        assert controller.save_error is None

    def test_unresolvable_row_is_skipped(self, controller):
        controller.edits = controller.edits.set_cell("[99]", "name", "x", {"id": 99, "name": "y"})
        assert controller.build_batch() is None
        assert controller.begin_save() is None
        assert not controller.has_edits()

    def test_as_dict(self, controller):
        controller.set_cell("[1]", "name", "Al", _row(controller))
        data = controller.build_batch().as_dict()
        assert data["tableName"] == "people"
        assert data["primaryKeyColumns"] == ["id"]
        assert data["updates"][0]["rowKey"] == "[1]"
        assert data["updates"][0]["changes"] == {"name": "Al"}


class TestRevert:
    """Tests for revert."""

    def test_revert_clears_edits_and_error(self, failing_controller):
        controller = failing_controller
        controller.set_cell("[1]", "name", "Al", _row(controller))
        controller.save()
        controller.revert()
        assert not controller.has_edits()
        assert controller.save_error is None
        assert _row(controller)["name"] == "Alice"

    def test_revert_closes_editor(self, controller):
        controller.start_edit(_row(controller), "name")
        controller.revert()
        assert controller.session is None


class TestSearchAndExport:
    """Tests for filtering and export through the controller."""

    def test_filter_and_status(self, controller):
        controller.set_search("bob")
        assert [r["id"] for r in controller.filtered_rows] == [2]
        assert controller.is_filtered
        assert controller.status_text() == "1 row in 12 ms (Filtered from 2) [Editable]"

    def test_export_uses_filtered_base_rows(self, controller):
        controller.set_cell("[2]", "name", "Robert", _row(controller, 1))
        controller.set_search("bob")
        assert controller.export_csv() == "\ufeff" + '"id","name"\n"2","Bob"'

    def test_clipboard_text(self, controller):
        assert controller.clipboard_text() == "id\tname\n1\tAlice\n2\tBob"

    def test_composite_key(self, persistence):
        outcome = QueryOutcome(
            ResultSet([Column("region"), Column("id"), Column("v")],
                      [{"region": "EU", "id": 7, "v": 1}]),
            editable=EditableInfo("t", "main", "db", ["region", "id"]),
        )
        controller = ResultGridController(persistence)
        controller.load(outcome)
        assert controller.get_row_key(_row(controller)) == '["EU",7]'
        controller.set_cell('["EU",7]', "v", "2", _row(controller))
        assert controller.build_batch().database_name == "db"


class TestTwoRowScenario:
    """The two-row people result end to end."""

    def test_row_keys(self, controller):
        assert _key(controller, 0) == "[1]"
        assert _key(controller, 0) == controller.get_row_key({"id": 1, "name": "other"})
        assert _key(controller, 1) != _key(controller, 0)

    def test_search_and_clear(self, controller):
        controller.set_search("Bob")
        assert len(controller.filtered_rows) == 1
        controller.set_search("")
        assert len(controller.filtered_rows) == 2

    def test_save_bobby(self, controller):
        controller.set_cell("[2]", "name", "Bobby", _row(controller, 1))
        assert controller.save()
        assert not controller.has_edits()
        assert _row(controller, 1) == {"id": 2, "name": "Bobby"}
        assert controller.save_error is None

    def test_save_bobby_rejected(self, failing_controller):
        controller = failing_controller
        controller.set_cell("[2]", "name", "Bobby", _row(controller, 1))
        assert not controller.save()
        assert controller.edits.get_cell("[2]", "name") == "Bobby"
        assert "constraint violation" in controller.save_error
