"""
Query result ingestion types.

A query runner hands the grid a ``QueryOutcome``: the result set (or None),
whether a query is still executing, the error text of a failed query, timing,
the affected row count of a non-SELECT statement and, when the result came
from a single table with a known primary key, the ``EditableInfo`` that
enables inline editing.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import QueryError

Row = Dict[str, Any]


@dataclass(frozen=True)
class Column:
    name: str
    type: str = ""


@dataclass(frozen=True)
class EditableInfo:
    """Target table of an editable result."""

    table_name: str
    schema_name: str
    database_name: Optional[str] = None
    primary_key_columns: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "primary_key_columns",
                           tuple(self.primary_key_columns))


@dataclass(frozen=True)
class ResultSet:
    columns: Tuple[Column, ...] = ()
    rows: Tuple[Row, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "rows", tuple(self.rows))

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    @classmethod
    def from_cursor(cls, rows: Sequence[Sequence[Any]], description: Any) -> "ResultSet":
        """Build a result set from DB-API ``fetchall()`` rows and ``cursor.description``."""
        if not description:
            return cls()
        columns = []
        for col in description:
            type_code = col[1] if len(col) > 1 else None
            columns.append(Column(col[0], "" if type_code is None else str(type_code)))
        names = [col.name for col in columns]
        return cls(columns, [dict(zip(names, row)) for row in rows])


@dataclass(frozen=True)
class QueryOutcome:
    result: Optional[ResultSet] = None
    executing: bool = False
    error: Optional[str] = None
    elapsed_ms: Optional[float] = None
    rows_affected: Optional[int] = None
    editable: Optional[EditableInfo] = None
    message: Optional[str] = None

    @property
    def query_error(self) -> Optional[QueryError]:
        return QueryError(self.error) if self.error else None

    @property
    def columns(self) -> Tuple[Column, ...]:
        return self.result.columns if self.result else ()

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self.result.rows if self.result else ()

    @property
    def shows_rows_affected(self) -> bool:
        """Rows affected is only reported when there are no rows to show."""
        return self.rows_affected is not None and not self.rows


def plural(count: int, word: str = "row") -> str:
    return f"{count:,} {word}{'' if count == 1 else 's'}"


def status_text(outcome: Optional[QueryOutcome], filtered_count: Optional[int] = None,
                editable: bool = False) -> str:
    """One-line summary of a query outcome for the grid's status bar."""
    if outcome is None:
        return "Execute a query to see results"
    if outcome.executing:
        return "Executing query..."
    if outcome.error:
        return f"Error: {outcome.query_error.detail or outcome.query_error.statement}"

    timing = ""
    if outcome.elapsed_ms is not None:
        timing = f" in {outcome.elapsed_ms:,.0f} ms"

    if outcome.shows_rows_affected:
        return f"{plural(outcome.rows_affected)} affected{timing}"
    if outcome.message and not outcome.rows:
        return f"{outcome.message}{timing}"
    if outcome.result is None:
        return "Execute a query to see results"

    total = len(outcome.rows)
    shown = total if filtered_count is None else filtered_count
    text = plural(shown) + timing
    if shown < total:
        text += f" (Filtered from {total:,})"
    if editable:
        text += " [Editable]"
    return text
