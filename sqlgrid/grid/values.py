"""
Cell value helpers for the result grid.

Three string forms are used for a cell value:

* ``normalize`` - the canonical form pending edits are stored and compared in.
  NULL and missing values both normalize to an empty string.
* ``to_text`` - plain coercion used by search and export, where NULL reads
  as ``null`` and can be searched for.
* ``format_cell`` - what a static (non-editing) cell displays.
"""

import json
from decimal import Decimal
from typing import Any, Tuple


class _Missing:
    """Sentinel for a column that is absent from a row mapping."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

NULL_MARKER = "NULL"
MISSING_MARKER = "undefined"


def cell_value(row: Any, column: str) -> Any:
    """Read a column from a row mapping, MISSING when absent."""
    if row is None:
        return MISSING
    return row.get(column, MISSING)


def _to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def normalize(value: Any) -> str:
    """Canonical comparable string form of a cell value."""
    if value is None or value is MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return _to_json(value)
    return str(value)


def to_text(value: Any) -> str:
    """Plain string coercion used for search matching and export."""
    if value is None:
        return "null"
    if value is MISSING:
        return "undefined"
    return normalize(value)


def format_cell(value: Any) -> Tuple[str, bool]:
    """Display text for a static cell.

    Returns ``(text, is_marker)`` where ``is_marker`` flags the NULL and
    undefined placeholders so the view can draw them differently.
    """
    if value is None:
        return NULL_MARKER, True
    if value is MISSING:
        return MISSING_MARKER, True
    return normalize(value), False


def is_numeric(value: Any) -> bool:
    """True for numbers that should be right-aligned (bools excluded)."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)
