"""
Main application window for SQLGrid PyQt6 GUI.

A query bar over a result grid, bound to one SQLite database file.
"""

from pathlib import Path
from typing import Optional
from PyQt6.QtCore import QThread, pyqtSignal
from PyQt6.QtGui import QAction, QCloseEvent, QKeySequence
from PyQt6.QtWidgets import (
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLineEdit,
    QPushButton,
    QStatusBar,
    QMessageBox,
    QApplication,
)

from ..database import GridSettings, set_setting
from ..grid.result import QueryOutcome
from ..persistence import SQLitePersistence, run_query
from .result_grid import ResultGrid
from .theme import Theme


class QueryWorker(QThread):
    """Background thread for query execution."""

    finished_outcome = pyqtSignal(object)

    def __init__(self, db_path: str, sql: str, limit: Optional[int] = None):
        super().__init__()
        self.db_path = db_path
        self.sql = sql
        self.limit = limit

    def run(self) -> None:
        """Execute query in background."""
        self.finished_outcome.emit(run_query(self.db_path, self.sql, self.limit))


class MainWindow(QMainWindow):
    """Main application window."""

    def __init__(self, db_path: str, sql: str = "", settings: Optional[GridSettings] = None):
        super().__init__()

        from ..version import __version__
        self.db_path = db_path
        self.setWindowTitle(f"SQLGrid v{__version__} - {Path(db_path).name}")
        self.setMinimumSize(1024, 600)

        self.settings = settings or GridSettings.load()
        Theme.set_dark(self.settings.dark_theme)
        Theme.apply(QApplication.instance())

        self._worker: Optional[QueryWorker] = None

        self._create_actions()
        self._create_central_widget()
        self.setStatusBar(QStatusBar())

        if sql:
            self.query_input.setText(sql)
            self.execute_query()

    def _create_actions(self) -> None:
        """Create menu actions."""
        self.action_dark_mode = QAction("Dark Mode", self)
        self.action_dark_mode.setCheckable(True)
        self.action_dark_mode.setChecked(Theme.is_dark())
        self.action_dark_mode.triggered.connect(self._toggle_dark_mode)

        self.action_quit = QAction("Quit", self)
        self.action_quit.setShortcut(QKeySequence("Ctrl+Q"))
        self.action_quit.triggered.connect(self.close)

        menu = self.menuBar().addMenu("&File")
        menu.addAction(self.action_dark_mode)
        menu.addSeparator()
        menu.addAction(self.action_quit)

    def _create_central_widget(self) -> None:
        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(4, 4, 4, 4)

        bar = QHBoxLayout()
        self.query_input = QLineEdit()
        self.query_input.setPlaceholderText("SELECT * FROM ...")
        self.query_input.returnPressed.connect(self.execute_query)
        bar.addWidget(self.query_input)
        self.btn_execute = QPushButton("Run")
        self.btn_execute.clicked.connect(self.execute_query)
        bar.addWidget(self.btn_execute)
        layout.addLayout(bar)

        self.grid = ResultGrid(SQLitePersistence(self.db_path), self.settings)
        self.grid.saved.connect(lambda count: self.set_status(f"Saved {count} row(s)"))
        layout.addWidget(self.grid)

        self.setCentralWidget(central)

    def set_status(self, message: str) -> None:
        self.statusBar().showMessage(message)

    def execute_query(self) -> None:
        sql = self.query_input.text().strip()
        if not sql or (self._worker and self._worker.isRunning()):
            return
        if self.grid.has_unsaved_changes() and not self._confirm_discard():
            return
        self.btn_execute.setEnabled(False)
        self.grid.load(QueryOutcome(executing=True))
        self._worker = QueryWorker(self.db_path, sql)
        self._worker.finished_outcome.connect(self._on_query_finished)
        self._worker.start()

    def _on_query_finished(self, outcome: QueryOutcome) -> None:
        self.btn_execute.setEnabled(True)
        self.grid.load(outcome)
        self.set_status(self.grid.controller.status_text())

    def _confirm_discard(self) -> bool:
        reply = QMessageBox.question(
            self, "Unsaved Changes",
            "The current results have unsaved changes.\n\nDiscard them?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No
        )
        return reply == QMessageBox.StandardButton.Yes

    def _toggle_dark_mode(self) -> None:
        Theme.toggle(QApplication.instance())
        set_setting("theme.dark", "1" if Theme.is_dark() else "0")
        self.grid.update()

    def closeEvent(self, event: QCloseEvent) -> None:
        """Handle window close."""
        if self.grid.has_unsaved_changes() and not self._confirm_discard():
            event.ignore()
            return
        if self._worker and self._worker.isRunning():
            self._worker.wait()
        self.grid.cleanup()
        event.accept()
