"""Tests for fixed-height virtualization."""

import pytest

from sqlgrid.grid.virtual import VirtualWindow


class TestVisibleRange:
    """Tests for VirtualWindow.visible_range."""

    def test_top_of_list(self):
        window = VirtualWindow(10000, 40, 500, overscan=5)
        # rows 0..12 intersect a 500px viewport, plus 5 below
        assert window.visible_range(0) == (0, 18)

    def test_scrolled(self):
        window = VirtualWindow(10000, 40, 500, overscan=5)
        start, stop = window.visible_range(4000)
        assert start == 95
        assert stop == 100 + 13 + 5

    def test_bounded_regardless_of_size(self):
        window = VirtualWindow(1_000_000, 40, 500, overscan=5)
        start, stop = window.visible_range(20_000_000)
        assert stop - start <= 500 // 40 + 1 + 2 * 5 + 1

    def test_clamped_at_end(self):
        window = VirtualWindow(100, 40, 500, overscan=5)
        start, stop = window.visible_range(10 ** 9)
        assert stop == 100
        assert start == window.max_scroll // 40 - 5

    def test_empty_list(self):
        assert VirtualWindow(0, 40, 500).visible_range(100) == (0, 0)

    def test_short_list(self):
        assert VirtualWindow(3, 40, 500).visible_range(0) == (0, 3)

    def test_zero_height_rejected(self):
        with pytest.raises(ValueError):
            VirtualWindow(10, 0, 500)


class TestGeometry:
    """Tests for content height and hit testing."""

    def test_content_and_max_scroll(self):
        window = VirtualWindow(100, 40, 500)
        assert window.content_height == 4000
        assert window.max_scroll == 3500
        assert VirtualWindow(5, 40, 500).max_scroll == 0

    def test_row_at(self):
        window = VirtualWindow(100, 40, 500)
        assert window.row_at(0) == 0
        assert window.row_at(39) == 0
        assert window.row_at(40) == 1
        assert window.row_at(10, scroll_offset=400) == 10
        assert VirtualWindow(2, 40, 500).row_at(100) == -1

    def test_scroll_to_row(self):
        window = VirtualWindow(100, 40, 500)
        assert window.scroll_to_row(0, 400) == 0
        assert window.scroll_to_row(20, 0) == 21 * 40 - 500
        assert window.scroll_to_row(5, 0) == 0
