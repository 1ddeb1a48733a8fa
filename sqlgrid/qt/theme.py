"""
Theme system for SQLGrid PyQt6 GUI.

Uses Qt's built-in Fusion style with system or custom palettes.
"""

from PyQt6.QtGui import QPalette, QColor
from PyQt6.QtWidgets import QApplication, QStyleFactory


class Theme:
    """Theme manager using Qt's Fusion style."""

    _is_dark: bool = True

    @classmethod
    def is_dark(cls) -> bool:
        return cls._is_dark

    @classmethod
    def set_dark(cls, dark: bool) -> None:
        cls._is_dark = dark

    @classmethod
    def apply(cls, app: QApplication) -> None:
        """Apply Fusion style with dark palette if enabled."""
        app.setStyle(QStyleFactory.create("Fusion"))

        if cls._is_dark:
            p = QPalette()
            p.setColor(QPalette.ColorRole.Window, QColor(53, 53, 53))
            p.setColor(QPalette.ColorRole.WindowText, QColor(255, 255, 255))
            p.setColor(QPalette.ColorRole.Base, QColor(35, 35, 35))
            p.setColor(QPalette.ColorRole.AlternateBase, QColor(53, 53, 53))
            p.setColor(QPalette.ColorRole.Text, QColor(255, 255, 255))
            p.setColor(QPalette.ColorRole.Button, QColor(53, 53, 53))
            p.setColor(QPalette.ColorRole.ButtonText, QColor(255, 255, 255))
            p.setColor(QPalette.ColorRole.Highlight, QColor(42, 130, 218))
            p.setColor(QPalette.ColorRole.HighlightedText, QColor(0, 0, 0))
            app.setPalette(p)
        else:
            app.setPalette(app.style().standardPalette())

    @classmethod
    def toggle(cls, app: QApplication) -> None:
        cls._is_dark = not cls._is_dark
        cls.apply(app)

    @classmethod
    def current(cls):
        """Get grid colors for current theme."""
        return DarkGrid() if cls._is_dark else LightGrid()


class DarkGrid:
    header_bg = "#2d2d2d"
    gutter_bg = "#2a2a2a"
    gutter_text = "#9a9a9a"
    grid_line = "#444444"
    hover_bg = "#3a3a3a"
    dirty_bg = "#4a4a1e"
    marker = "#999999"
    primary_key = "#e0a040"
    error = "#f48771"
    editor_border = "#2a82da"


class LightGrid:
    header_bg = "#f5f5f5"
    gutter_bg = "#fafafa"
    gutter_text = "#757575"
    grid_line = "#e0e0e0"
    hover_bg = "#f0f4fa"
    dirty_bg = "#fff5c2"
    marker = "#999999"
    primary_key = "#ed6c02"
    error = "#d32f2f"
    editor_border = "#1976d2"
