"""
Result grid core for SQLGrid.

Everything here is GUI independent; ``sqlgrid.qt`` renders it with PyQt6.
"""

from .controller import ResultGridController, RowUpdate, SaveBatch
from .edits import PendingEdits
from .errors import PersistenceError, QueryError
from .identity import RowIdentity
from .result import Column, EditableInfo, QueryOutcome, ResultSet
from .values import MISSING, normalize
from .virtual import VirtualWindow

__all__ = [
    "Column",
    "EditableInfo",
    "MISSING",
    "PendingEdits",
    "PersistenceError",
    "QueryError",
    "QueryOutcome",
    "ResultGridController",
    "ResultSet",
    "RowIdentity",
    "RowUpdate",
    "SaveBatch",
    "VirtualWindow",
    "normalize",
]
