"""
Pending cell edits.

``PendingEdits`` is an immutable value: every change returns a new instance
and the nested dicts of a published instance are never touched again, so a
view holding an older instance keeps seeing a consistent snapshot.

Invariant: a stored value never equals the normalized base value of its
cell, and a row with no remaining column edits has no entry. ``has_edits()``
is therefore true exactly when at least one cell is dirty.
"""

from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from .values import cell_value, normalize


class PendingEdits:
    """Sparse row key -> column -> normalized value map."""

    __slots__ = ("_edits",)

    def __init__(self, edits: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._edits: Dict[str, Dict[str, str]] = {
            key: dict(changes) for key, changes in (edits or {}).items() if changes
        }

    def set_cell(self, row_key: Optional[str], column: str, new_value: Any,
                 base_row: Mapping[str, Any]) -> "PendingEdits":
        """Record ``new_value`` for a cell, pruning it if it matches the base."""
        if not row_key:
            return self
        value = normalize(new_value)
        base = normalize(cell_value(base_row, column))
        current = self._edits.get(row_key, {})

        if value == base:
            if column not in current:
                return self
            changes = {k: v for k, v in current.items() if k != column}
        else:
            if current.get(column) == value:
                return self
            changes = dict(current)
            changes[column] = value

        edits = dict(self._edits)
        if changes:
            edits[row_key] = changes
        else:
            edits.pop(row_key, None)
        return self._wrap(edits)

    def get_cell(self, row_key: Optional[str], column: str) -> Optional[str]:
        """Pending value of a cell, or None to display the base value."""
        if not row_key:
            return None
        return self._edits.get(row_key, {}).get(column)

    def is_dirty(self, row: Mapping[str, Any], row_key: Optional[str], column: str) -> bool:
        pending = self.get_cell(row_key, column)
        if pending is None:
            return False
        return pending != normalize(cell_value(row, column))

    def has_edits(self) -> bool:
        return bool(self._edits)

    def changes_for(self, row_key: str) -> Dict[str, str]:
        return dict(self._edits.get(row_key, {}))

    def row_keys(self) -> Tuple[str, ...]:
        return tuple(self._edits)

    def cell_count(self) -> int:
        return sum(len(changes) for changes in self._edits.values())

    def items(self) -> Iterator[Tuple[str, Dict[str, str]]]:
        for key, changes in self._edits.items():
            yield key, dict(changes)

    def clear(self) -> "PendingEdits":
        return EMPTY_EDITS

    def without(self, sent: Mapping[str, Mapping[str, str]]) -> "PendingEdits":
        """Drop the cells of ``sent`` whose pending value is still the one sent."""
        edits = {}
        for key, changes in self._edits.items():
            sent_changes = sent.get(key, {})
            remaining = {col: value for col, value in changes.items()
                         if sent_changes.get(col) != value}
            if remaining:
                edits[key] = remaining
        return self._wrap(edits)

    def rebase(self, index: Mapping[str, Mapping[str, Any]]) -> "PendingEdits":
        """Re-check every cell against new base rows, pruning clean ones."""
        edits = {}
        for key, changes in self._edits.items():
            row = index.get(key)
            if row is None:
                edits[key] = changes
                continue
            remaining = {col: value for col, value in changes.items()
                         if value != normalize(cell_value(row, col))}
            if remaining:
                edits[key] = remaining
        return self._wrap(edits)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {key: dict(changes) for key, changes in self._edits.items()}

    @classmethod
    def _wrap(cls, edits: Dict[str, Dict[str, str]]) -> "PendingEdits":
        if not edits:
            return EMPTY_EDITS
        instance = cls.__new__(cls)
        instance._edits = edits
        return instance

    def __len__(self) -> int:
        return len(self._edits)

    def __bool__(self) -> bool:
        return bool(self._edits)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PendingEdits):
            return NotImplemented
        return self._edits == other._edits

    def __repr__(self) -> str:
        return f"PendingEdits({self._edits!r})"


EMPTY_EDITS = PendingEdits()
