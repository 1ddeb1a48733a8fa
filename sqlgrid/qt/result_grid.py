"""
Result Grid Widget for SQLGrid PyQt6 GUI.

Shows a query result in a virtualized table: only the rows inside the
viewport are painted, at a fixed row height. Editable results get a single
inline cell editor, Save/Revert buttons and a background save worker.
"""

from pathlib import Path
from typing import Optional, Any, List, Tuple
from PyQt6.QtCore import Qt, QThread, pyqtSignal, QTimer, QRect, QEvent
from PyQt6.QtGui import (
    QColor,
    QFont,
    QPainter,
    QPalette,
    QTextCursor,
    QKeySequence,
    QShortcut,
)
from PyQt6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QAbstractScrollArea,
    QPlainTextEdit,
    QStackedWidget,
    QTextEdit,
    QLabel,
    QLineEdit,
    QPushButton,
    QMenu,
    QFileDialog,
    QMessageBox,
    QApplication,
    QFrame,
    QToolTip,
)

from ..database import GridSettings, set_setting
from ..grid.controller import ResultGridController, SaveBatch
from ..grid.export import export_filename, write_csv, write_json, write_xlsx
from ..grid.render import column_widths, render_headers, render_row, render_window
from ..grid.result import plural
from ..grid.session import EditSession, KEY_ENTER, KEY_ESCAPE
from ..grid.values import cell_value, normalize
from ..grid.virtual import VirtualWindow
from .theme import Theme

GUTTER_WIDTH = 60
HEADER_HEIGHT = 32
CELL_PADDING = 8

PAGE_TABLE = 0
PAGE_MESSAGE = 1
PAGE_ERROR = 2


class SaveWorker(QThread):
    """Background thread for persisting a save batch."""

    saved = pyqtSignal(object)           # batch
    failed = pyqtSignal(object, object)  # batch, exception

    def __init__(self, persist: Any, batch: SaveBatch):
        super().__init__()
        self.persist = persist
        self.batch = batch

    def run(self) -> None:
        """Run the persistence call in background."""
        try:
            self.persist(self.batch)
        except Exception as e:
            self.failed.emit(self.batch, e)
        else:
            self.saved.emit(self.batch)


class _EditorText(QPlainTextEdit):
    """Text area of the inline cell editor."""

    def __init__(self, editor: "CellEditorWidget"):
        super().__init__(editor)
        self.editor = editor
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setTabChangesFocus(True)

    def keyPressEvent(self, event) -> None:
        key = event.key()
        shift = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        if key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            event.accept()
            if shift:
                self.insertPlainText("\n")
            else:
                self.editor.body.editor_key(self.editor.session, KEY_ENTER, self.toPlainText())
            return
        if key == Qt.Key.Key_Escape:
            event.accept()
            self.editor.body.editor_key(self.editor.session, KEY_ESCAPE, self.toPlainText())
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event) -> None:
        super().focusOutEvent(event)
        # The editor's own context menu takes focus without leaving the cell
        if event.reason() == Qt.FocusReason.PopupFocusReason:
            return
        new_focus = QApplication.focusWidget()
        inside = new_focus is not None and (
            new_focus is self.editor or self.editor.isAncestorOf(new_focus))
        self.editor.body.editor_blur(self.editor.session, inside, self.toPlainText())


class CellEditorWidget(QFrame):
    """Inline editor mounted over the cell being edited."""

    def __init__(self, body: "GridBody", session: EditSession):
        super().__init__(body.viewport())
        self.body = body
        self.session = session

        self.setObjectName("cellEditor")
        self.setStyleSheet(
            f"#cellEditor {{ border: 1px solid {Theme.current().editor_border}; }}")
        layout = QHBoxLayout(self)
        layout.setContentsMargins(2, 2, 2, 2)
        layout.setSpacing(0)

        self.text = _EditorText(self)
        self.text.setPlainText(session.initial_value)
        self.text.setPlaceholderText(session.placeholder)
        self.text.textChanged.connect(
            lambda: body.controller.update_edit(session, self.text.toPlainText()))
        layout.addWidget(self.text)

    def take_focus(self) -> None:
        """Focus the text and put the caret at the end."""
        self.text.setFocus(Qt.FocusReason.OtherFocusReason)
        cursor = self.text.textCursor()
        cursor.movePosition(QTextCursor.MoveOperation.End)
        self.text.setTextCursor(cursor)


class GridHeader(QWidget):
    """Column header row, scrolled horizontally with the body."""

    def __init__(self, grid: "ResultGrid"):
        super().__init__(grid)
        self.grid = grid
        self._widths: List[int] = []
        self._offset = 0
        self.setFixedHeight(HEADER_HEIGHT)
        self.setMouseTracking(True)

    def set_layout(self, widths: List[int], offset: int) -> None:
        self._widths = list(widths)
        self._offset = offset
        self.update()

    def column_at(self, x: int) -> int:
        x = x + self._offset - GUTTER_WIDTH
        if x < 0:
            return -1
        for col, width in enumerate(self._widths):
            if x < width:
                return col
            x -= width
        return -1

    def event(self, event) -> bool:
        if event.type() == QEvent.Type.ToolTip:
            headers = render_headers(self.grid.controller)
            col = self.column_at(event.pos().x())
            if 0 <= col < len(headers):
                QToolTip.showText(event.globalPos(), headers[col].tooltip, self)
            else:
                QToolTip.hideText()
            return True
        return super().event(event)

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        colors = Theme.current()
        painter.fillRect(self.rect(), QColor(colors.header_bg))

        bold = QFont(self.font())
        bold.setBold(True)
        painter.setFont(bold)
        fm = painter.fontMetrics()

        x = -self._offset
        painter.setPen(self.palette().color(QPalette.ColorRole.WindowText))
        painter.drawText(QRect(x, 0, GUTTER_WIDTH, HEADER_HEIGHT),
                         Qt.AlignmentFlag.AlignCenter, "#")
        x += GUTTER_WIDTH

        for header, width in zip(render_headers(self.grid.controller), self._widths):
            rect = QRect(x, 0, width, HEADER_HEIGHT).adjusted(CELL_PADDING, 0, -CELL_PADDING, 0)
            if header.is_primary_key:
                painter.setPen(QColor(colors.primary_key))
                painter.drawText(rect, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter,
                                 "PK")
                rect = rect.adjusted(fm.horizontalAdvance("PK") + 6, 0, 0, 0)
            painter.setPen(self.palette().color(QPalette.ColorRole.WindowText))
            text = fm.elidedText(header.name, Qt.TextElideMode.ElideRight, rect.width())
            painter.drawText(rect, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter, text)
            painter.setPen(QColor(colors.grid_line))
            painter.drawLine(x + width - 1, 0, x + width - 1, HEADER_HEIGHT)
            x += width

        painter.setPen(QColor(colors.grid_line))
        painter.drawLine(0, HEADER_HEIGHT - 1, self.width(), HEADER_HEIGHT - 1)
        painter.end()


class GridBody(QAbstractScrollArea):
    """Virtualized table body painting only the rows in view."""

    def __init__(self, grid: "ResultGrid"):
        super().__init__(grid)
        self.grid = grid
        self.controller = grid.controller
        self.settings = grid.settings
        self._widths: List[int] = []
        self._hover_row = -1
        self._editor: Optional[CellEditorWidget] = None
        self._editor_index: Tuple[Any, int] = ((), -1)

        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.viewport().setMouseTracking(True)
        self.verticalScrollBar().setSingleStep(self.settings.row_height)
        self.horizontalScrollBar().setSingleStep(20)
        self.horizontalScrollBar().valueChanged.connect(self._sync_header)

        self.viewport().setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.viewport().customContextMenuRequested.connect(self._show_context_menu)

    # ── Geometry ────────────────────────────────────────────────

    def virtual_window(self) -> VirtualWindow:
        return VirtualWindow(len(self.controller.filtered_rows), self.settings.row_height,
                             self.viewport().height(), self.settings.overscan)

    def visible_rows(self):
        return render_window(self.controller, self.virtual_window(),
                             self.verticalScrollBar().value())

    def relayout(self) -> None:
        """Recompute column widths and scroll ranges."""
        viewport = self.viewport()
        self._widths = column_widths(
            len(self.controller.columns), viewport.width(),
            self.settings.column_min_width, self.settings.column_max_width, GUTTER_WIDTH)
        content_width = GUTTER_WIDTH + sum(self._widths)

        hbar = self.horizontalScrollBar()
        hbar.setPageStep(viewport.width())
        hbar.setRange(0, max(0, content_width - viewport.width()))

        vbar = self.verticalScrollBar()
        vbar.setPageStep(viewport.height())
        vbar.setRange(0, self.virtual_window().max_scroll)

        self._sync_header()
        self._sync_editor()
        viewport.update()

    def _sync_header(self, *args) -> None:
        self.grid.header.set_layout(self._widths, self.horizontalScrollBar().value())

    def cell_rect(self, index: int, col: int) -> QRect:
        x = GUTTER_WIDTH + sum(self._widths[:col]) - self.horizontalScrollBar().value()
        y = index * self.settings.row_height - self.verticalScrollBar().value()
        return QRect(x, y, self._widths[col], self.settings.row_height)

    def cell_at(self, pos) -> Tuple[int, int]:
        """(row index, column index) under a viewport position; -1 when outside."""
        index = self.virtual_window().row_at(pos.y(), self.verticalScrollBar().value())
        x = pos.x() + self.horizontalScrollBar().value() - GUTTER_WIDTH
        if index < 0 or x < 0:
            return index, -1
        for col, width in enumerate(self._widths):
            if x < width:
                return index, col
            x -= width
        return index, -1

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self.relayout()

    def scrollContentsBy(self, dx: int, dy: int) -> None:
        self._place_editor()
        self.viewport().update()

    # ── Painting ────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        painter = QPainter(self.viewport())
        colors = Theme.current()
        text_color = self.palette().color(QPalette.ColorRole.Text)
        row_height = self.settings.row_height
        x_offset = self.horizontalScrollBar().value()
        y_offset = self.verticalScrollBar().value()
        row_width = GUTTER_WIDTH + sum(self._widths)

        font = QFont(self.font())
        bold = QFont(font)
        bold.setBold(True)
        italic = QFont(font)
        italic.setItalic(True)

        for rendered in self.visible_rows():
            top = rendered.index * row_height - y_offset
            left = -x_offset
            if rendered.index == self._hover_row:
                painter.fillRect(QRect(left, top, row_width, row_height), QColor(colors.hover_bg))

            # Row number
            gutter = QRect(left, top, GUTTER_WIDTH, row_height)
            painter.fillRect(gutter, QColor(colors.gutter_bg))
            painter.setFont(font)
            painter.setPen(QColor(colors.gutter_text))
            painter.drawText(gutter, Qt.AlignmentFlag.AlignCenter, str(rendered.number))

            x = left + GUTTER_WIDTH
            for cell, width in zip(rendered.cells, self._widths):
                rect = QRect(x, top, width, row_height)
                if cell.dirty:
                    painter.fillRect(rect, QColor(colors.dirty_bg))
                if not cell.editing:
                    if cell.is_marker:
                        painter.setFont(italic)
                        painter.setPen(QColor(colors.marker))
                    else:
                        painter.setFont(bold if cell.dirty else font)
                        painter.setPen(text_color)
                    inner = rect.adjusted(CELL_PADDING, 0, -CELL_PADDING, 0)
                    first_line = cell.text.split("\n", 1)[0]
                    text = painter.fontMetrics().elidedText(
                        first_line, Qt.TextElideMode.ElideRight, inner.width())
                    align = (Qt.AlignmentFlag.AlignRight if cell.numeric
                             else Qt.AlignmentFlag.AlignLeft)
                    painter.drawText(inner, align | Qt.AlignmentFlag.AlignVCenter, text)
                painter.setPen(QColor(colors.grid_line))
                painter.drawLine(x + width - 1, top, x + width - 1, top + row_height - 1)
                x += width

            painter.setPen(QColor(colors.grid_line))
            painter.drawLine(left, top + row_height - 1, left + row_width, top + row_height - 1)

        painter.end()

    # ── Mouse ───────────────────────────────────────────────────

    def mouseMoveEvent(self, event) -> None:
        index, col = self.cell_at(event.position().toPoint())
        if index != self._hover_row:
            self._hover_row = index
            self.viewport().update()
        rows = self.controller.filtered_rows
        if 0 <= index < len(rows) and col >= 0:
            cell = render_row(self.controller, index, rows[index]).cells[col]
            self.viewport().setToolTip(cell.title)
        else:
            self.viewport().setToolTip("")
        super().mouseMoveEvent(event)

    def leaveEvent(self, event) -> None:
        self._hover_row = -1
        self.viewport().update()
        super().leaveEvent(event)

    def mouseDoubleClickEvent(self, event) -> None:
        index, col = self.cell_at(event.position().toPoint())
        if not self.start_edit(index, col):
            super().mouseDoubleClickEvent(event)

    def _row_and_column(self, index: int, col: int):
        rows = self.controller.filtered_rows
        if not (0 <= index < len(rows)) or not (0 <= col < len(self.controller.columns)):
            return None, None
        return rows[index], self.controller.columns[col].name

    def _show_context_menu(self, pos) -> None:
        """Show context menu."""
        index, col = self.cell_at(pos)
        row, column = self._row_and_column(index, col)
        menu = QMenu(self)
        if row is not None:
            row_key = self.controller.get_row_key(row)
            if self.controller.can_edit and row_key:
                menu.addAction("Edit Cell", lambda: self.start_edit(index, col))
                if self.controller.is_dirty(row, column):
                    menu.addAction("Revert Cell", lambda: self.controller.set_cell(
                        row_key, column, normalize(cell_value(row, column)), row))
                menu.addSeparator()
            menu.addAction("Copy Cell",
                           lambda: self.grid.copy_text(self.controller.display_text(row, column)))
            menu.addAction("Copy Row",
                           lambda: self.grid.copy_text(self.controller.clipboard_text([row])))
        menu.addAction("Copy All with Headers", self.grid.copy_to_clipboard)
        menu.exec(self.viewport().mapToGlobal(pos))

    # ── Editing ─────────────────────────────────────────────────

    def start_edit(self, index: int, col: int) -> bool:
        row, column = self._row_and_column(index, col)
        if row is None:
            return False
        return self.controller.start_edit(row, column) is not None

    def editor_key(self, session: EditSession, key: str, value: str) -> None:
        if self.controller.editor_key(session, key, False, value):
            self.setFocus(Qt.FocusReason.OtherFocusReason)

    def editor_blur(self, session: EditSession, focus_inside: bool, value: str) -> None:
        self.controller.editor_blur(session, focus_inside, value)

    def commit_editor(self) -> None:
        """Commit the open editor with the text it currently holds."""
        editor = self._editor
        if editor is not None:
            self.editor_blur(editor.session, False, editor.text.toPlainText())

    def _session_index(self, session: EditSession) -> int:
        rows = self.controller.filtered_rows
        cached_rows, cached_index = self._editor_index
        if cached_rows is rows and 0 <= cached_index < len(rows) and \
                self.controller.get_row_key(rows[cached_index]) == session.row_key:
            return cached_index
        index = -1
        for i, row in enumerate(rows):
            if self.controller.get_row_key(row) == session.row_key:
                index = i
        self._editor_index = (rows, index)
        return index

    def _sync_editor(self) -> None:
        """Mount, move or remove the inline editor to match the edit session."""
        session = self.controller.session
        if self._editor is not None and self._editor.session is not session:
            editor, self._editor = self._editor, None
            editor.hide()
            editor.deleteLater()
        if session is None:
            return
        if self._editor is None:
            self._editor = CellEditorWidget(self, session)
            self._place_editor()
            self._editor.show()
            self._editor.take_focus()
        else:
            self._place_editor()

    def _place_editor(self) -> None:
        editor = self._editor
        if editor is None:
            return
        names = [col.name for col in self.controller.columns]
        index = self._session_index(editor.session)
        if index < 0 or editor.session.column not in names:
            editor.hide()
            return
        editor.setGeometry(self.cell_rect(index, names.index(editor.session.column)))
        if editor.isHidden():
            editor.show()


class ResultGrid(QWidget):
    """Editable, searchable view of one query result."""

    saved = pyqtSignal(int)         # rows saved
    save_failed = pyqtSignal(str)   # error message

    def __init__(self, persistence: Any = None, settings: Optional[GridSettings] = None,
                 parent: Optional[QWidget] = None):
        super().__init__(parent)

        self.settings = settings or GridSettings.load()
        self.controller = ResultGridController(persistence)
        self._save_worker: Optional[SaveWorker] = None

        self._setup_ui()
        self._setup_shortcuts()
        self.controller.add_listener(self.refresh)
        self.refresh()

    def _setup_ui(self) -> None:
        """Set up the user interface."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        layout.addWidget(self._create_controls())

        self.pages = QStackedWidget()

        # Table page: header + virtualized body
        table_page = QWidget()
        table_layout = QVBoxLayout(table_page)
        table_layout.setContentsMargins(0, 0, 0, 0)
        table_layout.setSpacing(0)
        self.header = GridHeader(self)
        table_layout.addWidget(self.header)
        self.body = GridBody(self)
        table_layout.addWidget(self.body)
        self.pages.addWidget(table_page)

        # Message page: empty, executing, rows affected
        self.message_label = QLabel()
        self.message_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.message_label.setWordWrap(True)
        self.pages.addWidget(self.message_label)

        # Error page
        self.error_text = QTextEdit()
        self.error_text.setReadOnly(True)
        self.error_text.setFont(QFont("JetBrains Mono", 11))
        self.pages.addWidget(self.error_text)

        layout.addWidget(self.pages)

        self.results_status = QLabel("No results")
        self.results_status.setProperty("subheading", True)
        self.results_status.setContentsMargins(8, 4, 8, 4)
        layout.addWidget(self.results_status)

    def _create_controls(self) -> QWidget:
        """Create the results control bar."""
        controls = QFrame()
        layout = QHBoxLayout(controls)
        layout.setContentsMargins(8, 4, 8, 4)
        layout.setSpacing(6)

        title = QLabel("Results")
        bold = QFont(title.font())
        bold.setBold(True)
        title.setFont(bold)
        layout.addWidget(title)

        self.lbl_count = QLabel()
        layout.addWidget(self.lbl_count)

        self.lbl_elapsed = QLabel()
        layout.addWidget(self.lbl_elapsed)

        self.lbl_filtered = QLabel()
        layout.addWidget(self.lbl_filtered)

        self.lbl_save_error = QLabel()
        self.lbl_save_error.setWordWrap(True)
        self.lbl_save_error.hide()
        layout.addWidget(self.lbl_save_error)

        layout.addStretch()

        # Save/Revert buttons (hidden until edits exist)
        self.btn_save_changes = QPushButton("Save Changes")
        self.btn_save_changes.setProperty("primary", True)
        self.btn_save_changes.setToolTip("Save changes")
        self.btn_save_changes.clicked.connect(self.save_changes)
        self.btn_save_changes.hide()
        layout.addWidget(self.btn_save_changes)

        self.btn_revert_changes = QPushButton("Revert")
        self.btn_revert_changes.setProperty("danger", True)
        self.btn_revert_changes.setToolTip("Revert changes")
        self.btn_revert_changes.clicked.connect(self.revert_changes)
        self.btn_revert_changes.hide()
        layout.addWidget(self.btn_revert_changes)

        # Search
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search results...")
        self.search_input.setClearButtonEnabled(True)
        self.search_input.setFixedWidth(200)
        self.search_input.textChanged.connect(self.controller.set_search)
        layout.addWidget(self.search_input)

        # Export dropdown
        self.btn_export = QPushButton("Export ▾")
        export_menu = QMenu(self)
        export_menu.addAction("Copy to Clipboard", self.copy_to_clipboard)
        export_menu.addSeparator()
        export_menu.addAction("CSV (.csv)", lambda: self._export("csv"))
        export_menu.addAction("JSON (.json)", lambda: self._export("json"))
        export_menu.addAction("Excel (.xlsx)", lambda: self._export("xlsx"))
        self.btn_export.setMenu(export_menu)
        layout.addWidget(self.btn_export)

        return controls

    def _setup_shortcuts(self) -> None:
        QShortcut(QKeySequence("Ctrl+S"), self, self.save_changes)
        QShortcut(QKeySequence("Ctrl+F"), self, self.search_input.setFocus)

    # ── Results ─────────────────────────────────────────────────

    def load(self, outcome) -> None:
        """Show a new query outcome."""
        self.controller.load(outcome)

    def has_unsaved_changes(self) -> bool:
        return self.controller.has_edits()

    def refresh(self) -> None:
        """Bring every widget in line with the controller."""
        controller = self.controller
        outcome = controller.outcome
        colors = Theme.current()

        # Page selection
        if outcome is None:
            self._show_message("Execute a query to see results")
        elif outcome.executing:
            self._show_message("Executing query...")
        elif outcome.error:
            error = outcome.query_error
            lines = ["QUERY ERROR", ""]
            if error.statement:
                lines += ["Executed Query:", error.statement, ""]
            if error.detail:
                lines += ["Error Details:", error.detail]
            self.error_text.setPlainText("\n".join(lines))
            self.pages.setCurrentIndex(PAGE_ERROR)
        elif outcome.message and not controller.base_rows:
            self._show_message(f"{outcome.message}\n{self._elapsed_text(outcome)}".strip())
        elif outcome.shows_rows_affected:
            self._show_message(
                f"{plural(outcome.rows_affected)} affected\n{self._elapsed_text(outcome)}".strip())
        elif not controller.filtered_rows:
            self._show_message("No results match your search" if controller.search_term
                               else "No rows returned")
        else:
            self.pages.setCurrentIndex(PAGE_TABLE)

        # Control bar
        count = len(controller.filtered_rows)
        self.lbl_count.setText(plural(count))
        self.lbl_elapsed.setText(
            f"{outcome.elapsed_ms:,.0f}ms" if outcome and outcome.elapsed_ms else "")
        self.lbl_filtered.setText(
            f"Filtered from {len(controller.base_rows):,}" if controller.is_filtered else "")

        if controller.save_error:
            self.lbl_save_error.setText(controller.save_error)
            self.lbl_save_error.setStyleSheet(f"color: {colors.error};")
            self.lbl_save_error.show()
        else:
            self.lbl_save_error.hide()

        show_edit_buttons = controller.can_edit and controller.has_edits()
        self.btn_save_changes.setVisible(show_edit_buttons)
        self.btn_revert_changes.setVisible(show_edit_buttons)
        self.btn_save_changes.setEnabled(not controller.is_saving)
        self.btn_revert_changes.setEnabled(not controller.is_saving)

        status = controller.status_text()
        if controller.has_edits():
            status += f" - {controller.edits.cell_count()} unsaved change(s)"
        self.results_status.setText(status)

        self.body.relayout()

    def _show_message(self, text: str) -> None:
        self.message_label.setText(text)
        self.pages.setCurrentIndex(PAGE_MESSAGE)

    @staticmethod
    def _elapsed_text(outcome) -> str:
        if outcome.elapsed_ms is None:
            return ""
        return f"Completed in {outcome.elapsed_ms:,.0f} ms"

    def _set_status(self, message: str) -> None:
        """Set status message."""
        main_window = self.window()
        if hasattr(main_window, 'set_status'):
            main_window.set_status(message)

    # ── Save / revert ───────────────────────────────────────────

    def save_changes(self) -> None:
        """Persist pending edits on a background thread."""
        persist = self.controller.persistence
        if persist is None or (self._save_worker and self._save_worker.isRunning()):
            return
        # Ctrl+S does not take focus from an open editor
        self.body.commit_editor()
        batch = self.controller.begin_save()
        if batch is None:
            return

        self._set_status(f"Saving {plural(len(batch.updates))} to {batch.table_name}...")
        self._save_worker = SaveWorker(persist, batch)
        self._save_worker.saved.connect(self._on_save_finished)
        self._save_worker.failed.connect(self._on_save_failed)
        self._save_worker.start()

    def _on_save_finished(self, batch: SaveBatch) -> None:
        self.controller.complete_save(batch)
        self._set_status(f"Saved {plural(len(batch.updates))} to {batch.table_name}")
        self.saved.emit(len(batch.updates))

    def _on_save_failed(self, batch: SaveBatch, error: Any) -> None:
        self.controller.fail_save(error, batch)
        self._set_status(f"Save failed: {self.controller.save_error}")
        self.save_failed.emit(self.controller.save_error or "")

    def revert_changes(self) -> None:
        """Discard all unsaved changes."""
        if not self.controller.has_edits():
            return
        self.controller.revert()
        self._set_status("Changes reverted")

    # ── Clipboard / export ──────────────────────────────────────

    def copy_text(self, text: str) -> None:
        """Best-effort clipboard copy."""
        try:
            QApplication.clipboard().setText(text)
        except Exception:
            return
        self._set_status("Copied to clipboard")
        self.results_status.setText("Copied to clipboard")
        QTimer.singleShot(2000, self.refresh)

    def copy_to_clipboard(self) -> None:
        """Copy the filtered results to clipboard."""
        self.copy_text(self.controller.clipboard_text())

    def export_to(self, format: str, filename: str) -> Path:
        """Write the filtered rows to ``filename``."""
        columns = self.controller.columns
        rows = self.controller.filtered_rows
        path = Path(filename)
        if format == 'csv':
            return write_csv(columns, rows, path.parent, path.name)
        if format == 'json':
            return write_json(columns, rows, path)
        if format == 'xlsx':
            return write_xlsx(columns, rows, path)
        raise ValueError(f"Unknown export format: {format}")

    def _export(self, format: str) -> None:
        """Export results to file."""
        if not self.controller.columns or not self.controller.filtered_rows:
            QMessageBox.warning(self, "Export", "No results to export")
            return

        extensions = {
            'xlsx': "Excel Files (*.xlsx)",
            'csv': "CSV Files (*.csv)",
            'json': "JSON Files (*.json)"
        }
        default = str(Path(self.settings.export_directory) / export_filename(format))
        filename, _ = QFileDialog.getSaveFileName(
            self,
            f"Export to {format.upper()}",
            default,
            extensions.get(format, "All Files (*)")
        )
        if not filename:
            return

        if not filename.endswith(f".{format}"):
            filename += f".{format}"

        try:
            path = self.export_to(format, filename)
        except ImportError:
            QMessageBox.warning(
                self,
                "Export Error",
                "openpyxl module not installed.\nInstall with: pip install openpyxl"
            )
            return
        except Exception as e:
            QMessageBox.critical(self, "Export Error", f"Failed to export: {e}")
            return

        try:
            set_setting("export.directory", str(path.parent))
        except Exception as e:
            print(f"Failed to remember export directory: {e}")
        self._set_status(f"Exported to {path}")

    def cleanup(self) -> None:
        """Clean up resources."""
        if self._save_worker and self._save_worker.isRunning():
            self._save_worker.wait()
