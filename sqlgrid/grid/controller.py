"""
Result grid state and the save/revert workflow.

``ResultGridController`` owns everything the grid shows: the base rows of the
current result, the search term, the pending edits, the open edit session
and the save state. It has no GUI dependency; the Qt widget renders from it
and forwards user events to it.

State is replaced, never mutated: base rows are a tuple of row dicts that
are copied on change and ``PendingEdits`` is an immutable value, so a render
that captured the previous state is never affected by an update.

Saving is split into three steps so the persistence call can run off the UI
thread:

    batch = controller.begin_save()      # snapshot, marks save in flight
    persistence.save(batch)              # anywhere
    controller.complete_save(batch)      # or controller.fail_save(error)

``save()`` runs the three steps synchronously.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .edits import EMPTY_EDITS, PendingEdits
from .errors import save_error_message
from .export import encode_csv, to_clipboard_text
from .identity import RowIdentity
from .result import Column, EditableInfo, QueryOutcome, Row, status_text
from .search import filter_rows
from .session import CellEditor, EditResult, EditSession
from .values import cell_value, format_cell


@dataclass(frozen=True)
class RowUpdate:
    row_key: str
    row: Row
    changes: Dict[str, str]


@dataclass(frozen=True)
class SaveBatch:
    """Payload handed to the persistence backend."""

    table_name: str
    schema_name: str
    database_name: Optional[str]
    primary_key_columns: Tuple[str, ...]
    updates: Tuple[RowUpdate, ...]
    generation: int = 0

    @property
    def cell_count(self) -> int:
        return sum(len(update.changes) for update in self.updates)

    def sent_changes(self) -> Dict[str, Dict[str, str]]:
        return {update.row_key: dict(update.changes) for update in self.updates}

    def as_dict(self) -> Dict[str, Any]:
        return {
            "tableName": self.table_name,
            "schemaName": self.schema_name,
            "databaseName": self.database_name,
            "primaryKeyColumns": list(self.primary_key_columns),
            "updates": [
                {"rowKey": u.row_key, "row": dict(u.row), "changes": dict(u.changes)}
                for u in self.updates
            ],
        }


def _persist_callable(persistence: Any) -> Optional[Callable[[SaveBatch], Any]]:
    """Resolve a backend to the callable that persists a batch.

    An object whose class defines ``save`` is used through that method; any
    other callable (a function, a mock) is called directly.
    """
    if persistence is None:
        return None
    if callable(getattr(type(persistence), "save", None)):
        return persistence.save
    if callable(persistence):
        return persistence
    raise TypeError("persistence must be callable or provide save(batch)")


class ResultGridController:
    """State of one result grid."""

    def __init__(self, persistence: Any = None):
        self._persist = _persist_callable(persistence)
        self._listeners: List[Callable[[], None]] = []

        self.outcome: Optional[QueryOutcome] = None
        self.columns: Tuple[Column, ...] = ()
        self.base_rows: Tuple[Row, ...] = ()
        self.editable: Optional[EditableInfo] = None
        self.identity = RowIdentity((), None)
        self.edits: PendingEdits = EMPTY_EDITS
        self.editor = CellEditor()
        self.search_term = ""
        self.save_error: Optional[str] = None
        self.is_saving = False
        self._generation = 0

        self._filtered_cache: Optional[Tuple[Tuple[Row, ...], str, Tuple[Row, ...]]] = None
        self._index_cache: Optional[Tuple[Tuple[Row, ...], Dict[str, Row]]] = None

    # ── Change notification ─────────────────────────────────────

    def add_listener(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _changed(self) -> None:
        for callback in list(self._listeners):
            callback()

    # ── Results ─────────────────────────────────────────────────

    @property
    def persistence(self) -> Optional[Callable[[SaveBatch], Any]]:
        return self._persist

    def set_persistence(self, persistence: Any) -> None:
        self._persist = _persist_callable(persistence)
        self.identity = RowIdentity(self.columns, self.editable, self._persist)
        self._index_cache = None
        self._changed()

    def load(self, outcome: Optional[QueryOutcome]) -> None:
        """Show a new query outcome, discarding edits on the previous result."""
        self.outcome = outcome
        self.columns = outcome.columns if outcome else ()
        self.base_rows = tuple(outcome.rows) if outcome else ()
        self.editable = outcome.editable if outcome else None
        self.identity = RowIdentity(self.columns, self.editable, self._persist)
        self.edits = EMPTY_EDITS
        self.editor.close()
        self.save_error = None
        # a save still in flight belongs to the discarded result
        self.is_saving = False
        self._generation += 1
        self._changed()

    def clear(self) -> None:
        self.load(None)

    @property
    def can_edit(self) -> bool:
        return self.identity.can_edit

    @property
    def primary_key_columns(self) -> Tuple[str, ...]:
        return self.identity.primary_key_columns

    def get_row_key(self, row: Row) -> Optional[str]:
        return self.identity.get_row_key(row)

    @property
    def row_index(self) -> Dict[str, Row]:
        cache = self._index_cache
        if cache is None or cache[0] is not self.base_rows:
            cache = (self.base_rows, self.identity.build_index(self.base_rows))
            self._index_cache = cache
        return cache[1]

    # ── Search ──────────────────────────────────────────────────

    def set_search(self, term: str) -> None:
        term = term or ""
        if term == self.search_term:
            return
        self.search_term = term
        self._changed()

    @property
    def filtered_rows(self) -> Tuple[Row, ...]:
        cache = self._filtered_cache
        if cache is None or cache[0] is not self.base_rows or cache[1] != self.search_term:
            cache = (self.base_rows, self.search_term,
                     filter_rows(self.base_rows, self.search_term))
            self._filtered_cache = cache
        return cache[2]

    @property
    def is_filtered(self) -> bool:
        return bool(self.search_term.strip()) and len(self.filtered_rows) < len(self.base_rows)

    def status_text(self) -> str:
        return status_text(self.outcome, len(self.filtered_rows), self.can_edit)

    # ── Cell state ──────────────────────────────────────────────

    def display_value(self, row: Row, column: str) -> Any:
        """Pending value when there is one, else the base value."""
        pending = self.edits.get_cell(self.get_row_key(row), column)
        return pending if pending is not None else cell_value(row, column)

    def display_text(self, row: Row, column: str) -> str:
        return format_cell(self.display_value(row, column))[0]

    def is_dirty(self, row: Row, column: str) -> bool:
        return self.edits.is_dirty(row, self.get_row_key(row), column)

    def has_edits(self) -> bool:
        return self.edits.has_edits()

    def set_cell(self, row_key: Optional[str], column: str, value: Any, row: Row) -> None:
        if not self.can_edit or not row_key:
            return
        edits = self.edits.set_cell(row_key, column, value, row)
        if edits is not self.edits:
            self.edits = edits
            self._changed()

    # ── Edit session ────────────────────────────────────────────

    @property
    def session(self) -> Optional[EditSession]:
        return self.editor.session

    def is_editing(self, row_key: Optional[str], column: str) -> bool:
        session = self.editor.session
        return session is not None and session.matches(row_key, column)

    def start_edit(self, row: Row, column: str) -> Optional[EditSession]:
        """Open the editor on a cell, committing any session still open elsewhere."""
        if not self.can_edit:
            return None
        row_key = self.get_row_key(row)
        live = self.editor.session
        if live is not None:
            if live.matches(row_key, column):
                return live
            self.commit_edit(live)
        session = self.editor.open(row_key, column, row, self.edits)
        if session is not None:
            self._changed()
        return session

    def _apply(self, result: Optional[EditResult]) -> bool:
        if result is None:
            return False
        self.edits = self.edits.set_cell(result.row_key, result.column, result.value, result.row)
        self._changed()
        return True

    def update_edit(self, session: EditSession, value: str) -> None:
        """Track the editor text so a later commit without a value uses it."""
        self.editor.update(session, value)

    def commit_edit(self, session: EditSession, value: Optional[str] = None) -> bool:
        return self._apply(self.editor.commit(session, value))

    def cancel_edit(self, session: EditSession) -> bool:
        return self._apply(self.editor.cancel(session))

    def editor_key(self, session: EditSession, key: str, shift: bool = False,
                   value: Optional[str] = None) -> bool:
        return self._apply(self.editor.key_press(session, key, shift, value))

    def editor_blur(self, session: EditSession, focus_inside: bool,
                    value: Optional[str] = None) -> bool:
        return self._apply(self.editor.blur(session, focus_inside, value))

    def close_editor(self) -> None:
        if self.editor.is_editing:
            self.editor.close()
            self._changed()

    # ── Save / revert ───────────────────────────────────────────

    @property
    def can_save(self) -> bool:
        return self.can_edit and self.has_edits() and not self.is_saving

    def build_batch(self) -> Optional[SaveBatch]:
        """Snapshot of the pending edits that can be resolved to rows."""
        index = self.row_index
        updates = []
        for row_key, changes in self.edits.items():
            row = index.get(row_key)
            if row is None or not changes:
                continue
            updates.append(RowUpdate(row_key, row, changes))
        if not updates:
            return None
        info = self.editable
        return SaveBatch(
            table_name=info.table_name,
            schema_name=info.schema_name,
            database_name=info.database_name or None,
            primary_key_columns=self.primary_key_columns,
            updates=tuple(updates),
            generation=self._generation,
        )

    def begin_save(self) -> Optional[SaveBatch]:
        """Start a save; returns the batch to persist, or None when there is nothing to send."""
        if not self.can_save:
            return None
        batch = self.build_batch()
        if batch is None:
            self.revert()
            return None
        self.is_saving = True
        self.save_error = None
        self._changed()
        return batch

    def complete_save(self, batch: SaveBatch) -> None:
        """Merge a persisted batch into the base rows."""
        if batch.generation != self._generation:
            return
        sent = batch.sent_changes()
        rows = []
        for row in self.base_rows:
            changes = sent.get(self.get_row_key(row))
            rows.append({**row, **changes} if changes else row)
        self.base_rows = tuple(rows)
        self.edits = self.edits.without(sent).rebase(self.row_index)
        self.editor.close()
        self.is_saving = False
        self._changed()

    def fail_save(self, error: Any, batch: Optional[SaveBatch] = None) -> None:
        """Keep the pending edits and surface the failure."""
        if batch is not None and batch.generation != self._generation:
            return
        self.save_error = save_error_message(error)
        self.is_saving = False
        self._changed()

    def save(self, persistence: Any = None) -> bool:
        """Save synchronously. Returns True when a batch was persisted."""
        persist = _persist_callable(persistence) if persistence is not None else self._persist
        if persist is None:
            return False
        batch = self.begin_save()
        if batch is None:
            return False
        try:
            persist(batch)
        except Exception as e:
            self.fail_save(e, batch)
            return False
        self.complete_save(batch)
        return True

    def revert(self) -> None:
        """Drop all pending edits. Never touches the backend."""
        if self.is_saving:
            return
        self.edits = EMPTY_EDITS
        self.editor.close()
        self.save_error = None
        self._changed()

    # ── Export ──────────────────────────────────────────────────

    def export_csv(self) -> str:
        return encode_csv(self.columns, self.filtered_rows)

    def clipboard_text(self, rows: Optional[Sequence[Row]] = None) -> str:
        return to_clipboard_text(self.columns, self.filtered_rows if rows is None else rows)

