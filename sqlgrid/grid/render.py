"""
Headless rendering of the visible part of a result grid.

``render_window`` turns controller state plus a scroll position into the
rows and cells a view has to draw. Only rows inside the viewport (plus the
overscan margin) are produced.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .controller import ResultGridController
from .result import Row
from .values import format_cell, is_numeric
from .virtual import VirtualWindow


@dataclass(frozen=True)
class RenderedCell:
    column: str
    text: str
    is_marker: bool = False
    dirty: bool = False
    editing: bool = False
    editable: bool = False
    numeric: bool = False

    @property
    def title(self) -> str:
        return f"Value: {self.text}"


@dataclass(frozen=True)
class RenderedRow:
    index: int
    row: Row
    row_key: Optional[str]
    cells: Tuple[RenderedCell, ...]

    @property
    def number(self) -> int:
        return self.index + 1

    @property
    def dirty(self) -> bool:
        return any(cell.dirty for cell in self.cells)


@dataclass(frozen=True)
class RenderedHeader:
    name: str
    type: str
    is_primary_key: bool
    tooltip: str


def render_headers(controller: ResultGridController) -> List[RenderedHeader]:
    pk_columns = controller.primary_key_columns
    pk_tip = f"Primary key: {', '.join(pk_columns)}" if pk_columns else ""
    headers = []
    for col in controller.columns:
        is_pk = col.name in pk_columns
        tooltip = col.type or "unknown type"
        if is_pk:
            tooltip = f"{pk_tip}\n{tooltip}"
        headers.append(RenderedHeader(col.name, col.type, is_pk, tooltip))
    return headers


def render_row(controller: ResultGridController, index: int, row: Row) -> RenderedRow:
    row_key = controller.get_row_key(row)
    can_edit_row = bool(controller.can_edit and row_key)
    cells = []
    for col in controller.columns:
        value = controller.display_value(row, col.name)
        text, is_marker = format_cell(value)
        cells.append(RenderedCell(
            column=col.name,
            text=text,
            is_marker=is_marker,
            dirty=controller.edits.is_dirty(row, row_key, col.name) if row_key else False,
            editing=controller.is_editing(row_key, col.name),
            editable=can_edit_row,
            numeric=is_numeric(value),
        ))
    return RenderedRow(index, row, row_key, tuple(cells))


def render_window(controller: ResultGridController, window: VirtualWindow,
                  scroll_offset: int = 0) -> List[RenderedRow]:
    """Rows of the filtered result that intersect the viewport."""
    rows = controller.filtered_rows
    start, stop = window.visible_range(scroll_offset)
    stop = min(stop, len(rows))
    return [render_row(controller, i, rows[i]) for i in range(start, stop)]


def column_widths(count: int, available: int, min_width: int, max_width: int,
                  gutter: int = 60) -> List[int]:
    """Equal-share column widths clamped to ``[min_width, max_width]``.

    When the columns cannot fit at ``min_width`` the content is wider than
    ``available`` and the grid scrolls horizontally.
    """
    if count <= 0:
        return []
    share = max(0, available - gutter) // count
    width = min(max(share, min_width), max(min_width, max_width))
    return [width] * count
