"""
Single-cell edit session.

The grid edits at most one cell at a time. ``CellEditor`` holds that slot:
it is either closed or holds one live ``EditSession``. A session ends exactly
once, by commit (Enter without Shift, or focus leaving the editor) or by
cancel (Escape). Events that arrive for a session that already ended, such
as the blur that follows an Enter, are ignored.
"""

from dataclasses import dataclass
from itertools import count
from typing import Any, Mapping, NamedTuple, Optional

from .edits import PendingEdits
from .values import cell_value, normalize

KEY_ENTER = "Enter"
KEY_ESCAPE = "Escape"

COMMIT = "commit"
CANCEL = "cancel"

_session_ids = count(1)


@dataclass
class EditSession:
    row_key: str
    column: str
    initial_value: str
    row: Mapping[str, Any]
    session_id: int = 0
    value: str = ""
    closed: bool = False

    def __post_init__(self):
        if not self.session_id:
            self.session_id = next(_session_ids)
        if not self.value:
            self.value = self.initial_value

    @property
    def placeholder(self) -> str:
        """Hint shown in an empty editor whose base value is NULL."""
        return "NULL" if cell_value(self.row, self.column) is None else ""

    def matches(self, row_key: Optional[str], column: str) -> bool:
        return not self.closed and self.row_key == row_key and self.column == column


class EditResult(NamedTuple):
    action: str
    row_key: str
    column: str
    value: str
    row: Mapping[str, Any]


class CellEditor:
    """Closed/editing state machine for the one editable cell."""

    def __init__(self):
        self.session: Optional[EditSession] = None

    @property
    def is_editing(self) -> bool:
        return self.session is not None

    def open(self, row_key: Optional[str], column: str, row: Mapping[str, Any],
             edits: PendingEdits) -> Optional[EditSession]:
        """Start editing a cell, seeded with its pending or base value."""
        if not row_key:
            return None
        pending = edits.get_cell(row_key, column)
        initial = pending if pending is not None else normalize(cell_value(row, column))
        if self.session is not None:
            self.session.closed = True
        self.session = EditSession(row_key, column, initial, row)
        return self.session

    def close(self) -> None:
        """Drop the live session without applying anything."""
        if self.session is not None:
            self.session.closed = True
        self.session = None

    def is_live(self, session: Optional[EditSession]) -> bool:
        return session is not None and not session.closed and session is self.session

    def update(self, session: EditSession, value: str) -> None:
        if self.is_live(session):
            session.value = value

    def commit(self, session: EditSession, value: Optional[str] = None) -> Optional[EditResult]:
        if not self.is_live(session):
            return None
        if value is not None:
            session.value = value
        self.close()
        return EditResult(COMMIT, session.row_key, session.column, session.value, session.row)

    def cancel(self, session: EditSession) -> Optional[EditResult]:
        """End the session, restoring the normalized base value."""
        if not self.is_live(session):
            return None
        self.close()
        base = normalize(cell_value(session.row, session.column))
        return EditResult(CANCEL, session.row_key, session.column, base, session.row)

    def key_press(self, session: EditSession, key: str, shift: bool = False,
                  value: Optional[str] = None) -> Optional[EditResult]:
        if key == KEY_ENTER and not shift:
            return self.commit(session, value)
        if key == KEY_ESCAPE:
            return self.cancel(session)
        return None

    def blur(self, session: EditSession, focus_inside: bool,
             value: Optional[str] = None) -> Optional[EditResult]:
        """Focus left the editor; commits unless it moved within the editor."""
        if focus_inside:
            return None
        return self.commit(session, value)
