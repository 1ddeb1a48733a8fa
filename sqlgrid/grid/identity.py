"""
Row identity for editable results.

Each row is identified by the JSON array of its primary key values, in the
order the primary key columns were declared, e.g. ``[1]`` or ``[7,"EU"]``.
Keys are only produced when editing is possible at all.
"""

import json
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from .result import Column, EditableInfo, Row


class RowIdentity:
    """Resolves row keys for one result set."""

    def __init__(self, columns: Sequence[Column], editable: Optional[EditableInfo],
                 persistence: Optional[Callable[..., Any]] = None):
        self.editable = editable
        self.primary_key_columns = tuple(editable.primary_key_columns) if editable else ()
        column_names = {col.name for col in columns}
        has_primary_key = bool(self.primary_key_columns) and all(
            name in column_names for name in self.primary_key_columns)
        self.can_edit = bool(
            editable
            and editable.table_name
            and editable.schema_name
            and has_primary_key
            and persistence is not None
        )

    def get_row_key(self, row: Row) -> Optional[str]:
        """Key for ``row``, or None when editing is disabled."""
        if not self.can_edit:
            return None
        values = [row.get(name) if row is not None else None
                  for name in self.primary_key_columns]
        return json.dumps(values, separators=(",", ":"), ensure_ascii=False, default=str)

    def build_index(self, rows: Iterable[Row]) -> Dict[str, Row]:
        """Map row key -> row. Duplicate keys collapse; the last row wins."""
        if not self.can_edit:
            return {}
        index = {}
        for row in rows:
            key = self.get_row_key(row)
            if key is not None:
                index[key] = row
        return index

    def is_primary_key(self, column: str) -> bool:
        return column in self.primary_key_columns
