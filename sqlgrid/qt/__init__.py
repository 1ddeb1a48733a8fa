"""
SQLGrid PyQt6 GUI Module

Virtualized, inline-editable result grid built with PyQt6.
"""

from .result_grid import ResultGrid
from .main_window import MainWindow

__all__ = ["ResultGrid", "MainWindow"]
