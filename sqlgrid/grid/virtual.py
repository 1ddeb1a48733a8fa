"""Fixed-height list virtualization."""

from typing import Tuple


class VirtualWindow:
    """Computes which rows of a fixed-row-height list need rendering.

    Knows nothing about what the rows contain; the grid asks it for the
    range intersecting the viewport, widened by ``overscan`` rows on both
    sides.
    """

    def __init__(self, item_count: int, item_height: int, viewport_height: int,
                 overscan: int = 5):
        if item_height <= 0:
            raise ValueError("item_height must be positive")
        self.item_count = max(0, item_count)
        self.item_height = item_height
        self.viewport_height = max(0, viewport_height)
        self.overscan = max(0, overscan)

    @property
    def content_height(self) -> int:
        return self.item_count * self.item_height

    @property
    def max_scroll(self) -> int:
        return max(0, self.content_height - self.viewport_height)

    def clamp_scroll(self, scroll_offset: int) -> int:
        return min(max(0, scroll_offset), self.max_scroll)

    def visible_range(self, scroll_offset: int = 0) -> Tuple[int, int]:
        """Half-open ``(start, stop)`` row range to render."""
        if self.item_count == 0:
            return 0, 0
        offset = self.clamp_scroll(scroll_offset)
        first = offset // self.item_height
        last = (offset + self.viewport_height - 1) // self.item_height if self.viewport_height else first
        start = max(0, first - self.overscan)
        stop = min(self.item_count, last + 1 + self.overscan)
        return start, stop

    def row_top(self, index: int) -> int:
        return index * self.item_height

    def row_at(self, y: int, scroll_offset: int = 0) -> int:
        """Row index under viewport coordinate ``y``, or -1."""
        index = (y + self.clamp_scroll(scroll_offset)) // self.item_height
        return index if 0 <= index < self.item_count else -1

    def scroll_to_row(self, index: int, scroll_offset: int) -> int:
        """Smallest scroll change that brings ``index`` fully into view."""
        top = self.row_top(index)
        bottom = top + self.item_height
        if top < scroll_offset:
            return self.clamp_scroll(top)
        if bottom > scroll_offset + self.viewport_height:
            return self.clamp_scroll(bottom - self.viewport_height)
        return self.clamp_scroll(scroll_offset)
