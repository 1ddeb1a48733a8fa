"""SQLite database for storing settings and the save log."""

import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path


def default_db_path():
    env_path = os.environ.get("SQLGRID_DB")
    if env_path:
        return Path(env_path)
    return Path.home() / ".sqlgrid" / "sqlgrid.db"


class Database:
    def __init__(self, db_path=None):
        if db_path is None:
            db_path = default_db_path()
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self):
        return sqlite3.connect(self.db_path)

    def _init_db(self):
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS save_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    table_name TEXT NOT NULL,
                    row_count INTEGER NOT NULL DEFAULT 0,
                    cell_count INTEGER NOT NULL DEFAULT 0,
                    duration REAL,
                    status TEXT NOT NULL,
                    error_message TEXT,
                    statements TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            # Migration: add statements column if it doesn't exist
            cursor = conn.execute("PRAGMA table_info(save_log)")
            columns = [row[1] for row in cursor.fetchall()]
            if 'statements' not in columns:
                conn.execute("ALTER TABLE save_log ADD COLUMN statements TEXT")
            conn.commit()

    # Settings methods
    def get_setting(self, key, default=None):
        with self._get_conn() as conn:
            cursor = conn.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row[0] if row else default

    def set_setting(self, key, value):
        with self._get_conn() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, None if value is None else str(value))
            )
            conn.commit()

    # Save log methods
    def log_save(self, table_name, row_count=0, cell_count=0, duration=None,
                 status="success", error_message=None, statements=None):
        with self._get_conn() as conn:
            conn.execute(
                """INSERT INTO save_log
                   (table_name, row_count, cell_count, duration, status, error_message, statements)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (table_name, row_count, cell_count, duration, status, error_message,
                 "\n".join(statements) if statements else None)
            )
            conn.commit()

    def get_save_log(self, limit=100):
        with self._get_conn() as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                """SELECT id, table_name, row_count, cell_count, duration, status,
                          error_message, statements, created_at
                   FROM save_log ORDER BY id DESC LIMIT ?""",
                (limit,)
            )
            return [dict(row) for row in cursor.fetchall()]

    def clear_save_log(self):
        with self._get_conn() as conn:
            conn.execute("DELETE FROM save_log")
            conn.commit()


_db = None


def _get_db():
    global _db
    if _db is None:
        _db = Database()
    return _db


def set_db(db):
    """Replace the shared database (used by tests and the --db option)."""
    global _db
    _db = db


def get_setting(key, default=None):
    return _get_db().get_setting(key, default)


def set_setting(key, value):
    _get_db().set_setting(key, value)


def _int_setting(db, key, default):
    value = db.get_setting(key)
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


@dataclass(frozen=True)
class GridSettings:
    row_height: int = 40
    overscan: int = 5
    column_min_width: int = 150
    column_max_width: int = 300
    viewport_height: int = 500
    export_directory: str = ""
    dark_theme: bool = True

    @classmethod
    def load(cls, db=None):
        db = db or _get_db()
        return cls(
            row_height=max(16, _int_setting(db, "grid.row_height", cls.row_height)),
            overscan=max(0, _int_setting(db, "grid.overscan", cls.overscan)),
            column_min_width=_int_setting(db, "grid.column_min_width", cls.column_min_width),
            column_max_width=_int_setting(db, "grid.column_max_width", cls.column_max_width),
            viewport_height=_int_setting(db, "grid.viewport_height", cls.viewport_height),
            export_directory=db.get_setting("export.directory") or str(Path.home()),
            dark_theme=db.get_setting("theme.dark", "1") == "1",
        )
