"""Substring search over result rows."""

from typing import Sequence, Tuple

from .result import Row
from .values import to_text


def filter_rows(rows: Sequence[Row], term: str) -> Tuple[Row, ...]:
    """Rows with at least one value containing ``term``, case-insensitive.

    Only base values are matched; an edited row keeps matching on its
    original values.
    """
    if not term or not term.strip():
        return tuple(rows)

    term_lower = term.lower()
    return tuple(
        row for row in rows
        if any(term_lower in to_text(value).lower() for value in row.values())
    )
