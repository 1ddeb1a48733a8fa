"""
SQLite query runner and persistence backend for the result grid.

``run_query`` executes a statement and returns a ``QueryOutcome``. A plain
single-table SELECT whose table has a primary key comes back editable.
``SQLitePersistence`` applies a ``SaveBatch`` as one UPDATE per edited row
inside a single transaction.
"""

import re
import sqlite3
import time
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from .database import _get_db
from .grid.controller import SaveBatch
from .grid.errors import PersistenceError, QueryError
from .grid.result import Column, EditableInfo, QueryOutcome, ResultSet

DEFAULT_SCHEMA = "main"


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def parse_single_table_select(sql: str) -> Tuple[Optional[str], Optional[str]]:
    """Parse SQL to detect single-table SELECT. Returns (schema, table) or (None, None)."""
    sql_clean = sql.strip().rstrip(';').strip()
    sql_upper = " ".join(sql_clean.upper().split())

    if not sql_upper.startswith('SELECT'):
        return None, None

    if ' JOIN ' in sql_upper:
        return None, None

    if ' UNION ' in sql_upper or ' INTERSECT ' in sql_upper or ' EXCEPT ' in sql_upper:
        return None, None

    from_pos = sql_upper.find(' FROM ')
    if from_pos == -1:
        return None, None

    after_from = sql_upper[from_pos + 6:].lstrip()
    if after_from.startswith('('):
        return None, None

    from_match = re.search(
        r'\bFROM\s+("[^"]+"|\w+)(?:\.("[^"]+"|\w+))?\s*(?:AS\s+\w+|\w+)?'
        r'(?:\s+WHERE|\s+ORDER|\s+GROUP|\s+HAVING|\s+LIMIT|\s*$)',
        sql_clean, re.IGNORECASE
    )
    if not from_match:
        return None, None

    first, second = from_match.group(1), from_match.group(2)
    if second:
        return first.strip('"'), second.strip('"')
    return None, first.strip('"')


def get_table_info(conn: sqlite3.Connection, schema: str, table: str) -> List[Tuple[str, str, int]]:
    """(name, declared type, pk position) for each column of ``table``."""
    cursor = conn.execute(f"PRAGMA {quote_ident(schema)}.table_info({quote_ident(table)})")
    return [(row[1], row[2] or "", row[5]) for row in cursor.fetchall()]


def _detect_editability(conn, sql, columns, database_name):
    """EditableInfo and declared column types for ``sql``, if it targets one table."""
    schema, table = parse_single_table_select(sql)
    if not table:
        return None, columns
    schema = schema or DEFAULT_SCHEMA
    try:
        info = get_table_info(conn, schema, table)
    except sqlite3.Error:
        return None, columns
    if not info:
        return None, columns

    types = {name: col_type for name, col_type, _ in info}
    columns = [Column(col.name, col.type or types.get(col.name, "")) for col in columns]
    pk_cols = [name for name, _, pk in sorted(info, key=lambda c: c[2]) if pk]
    if not pk_cols:
        return None, columns
    return EditableInfo(table, schema, database_name, tuple(pk_cols)), columns


def run_query(db_path: Union[str, Path], sql: str, limit: Optional[int] = None) -> QueryOutcome:
    """Execute ``sql`` against the SQLite file at ``db_path``."""
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()

        exec_start = time.time()
        cursor.execute(sql)
        if cursor.description:
            rows = cursor.fetchmany(limit) if limit else cursor.fetchall()
            description = cursor.description
        else:
            rows = []
            description = None
        conn.commit()
        elapsed_ms = (time.time() - exec_start) * 1000

        if description is None:
            rowcount = cursor.rowcount if cursor.rowcount >= 0 else 0
            cursor.close()
            return QueryOutcome(result=None, elapsed_ms=elapsed_ms, rows_affected=rowcount,
                                message="Query executed successfully")

        result = ResultSet.from_cursor(rows, description)
        cursor.close()
        editable, columns = _detect_editability(
            conn, sql, list(result.columns), Path(db_path).stem)
        return QueryOutcome(result=ResultSet(columns, result.rows),
                            elapsed_ms=elapsed_ms, editable=editable)

    except sqlite3.Error as e:
        return QueryOutcome(error=QueryError.build(sql, str(e)).text)
    finally:
        if conn:
            try:
                conn.close()
            except Exception:
                pass


def generate_update_sql(batch: SaveBatch, changes: dict, row: dict) -> Tuple[str, List[Any]]:
    """Generate UPDATE SQL for a modified row."""
    set_parts = []
    set_params = []
    for col_name, new_value in changes.items():
        set_parts.append(f"{quote_ident(col_name)} = ?")
        set_params.append(None if new_value == "" else new_value)

    where_parts = []
    where_params = []
    for pk_col in batch.primary_key_columns:
        pk_value = row.get(pk_col)
        if pk_value is None:
            where_parts.append(f"{quote_ident(pk_col)} IS NULL")
        else:
            where_parts.append(f"{quote_ident(pk_col)} = ?")
            where_params.append(pk_value)

    table_ref = (f"{quote_ident(batch.schema_name)}.{quote_ident(batch.table_name)}"
                 if batch.schema_name else quote_ident(batch.table_name))
    sql = f"UPDATE {table_ref} SET {', '.join(set_parts)} WHERE {' AND '.join(where_parts)}"
    return sql, set_params + where_params


def format_sql_with_params(sql: str, params: Sequence[Any]) -> str:
    """Format SQL with parameter values substituted for logging."""
    parts = sql.split("?")
    if len(parts) - 1 != len(params):
        return sql
    result = parts[0]
    for param, tail in zip(params, parts[1:]):
        if param is None:
            val = "NULL"
        elif isinstance(param, (int, float)):
            val = str(param)
        else:
            val = f"'{str(param).replace(chr(39), chr(39)+chr(39))}'"
        result += val + tail
    return result


class SQLitePersistence:
    """Applies save batches to a SQLite database file."""

    def __init__(self, db_path: Union[str, Path], log_db: Any = None):
        self.db_path = db_path
        self._log_db = log_db

    def _log(self, batch: SaveBatch, duration: float, status: str,
             error_message: Optional[str] = None, statements: Optional[List[str]] = None) -> None:
        try:
            db = self._log_db or _get_db()
            db.log_save(batch.table_name, len(batch.updates), batch.cell_count,
                        duration, status, error_message, statements)
        except Exception as e:
            print(f"Failed to log save: {e}")

    def save(self, batch: SaveBatch) -> None:
        """Apply every update of ``batch`` or none of them."""
        statements = []
        start_time = time.time()
        conn = sqlite3.connect(self.db_path)
        try:
            for update in batch.updates:
                sql, params = generate_update_sql(batch, update.changes, update.row)
                try:
                    cursor = conn.execute(sql, params)
                except sqlite3.Error as e:
                    raise PersistenceError(f"Row {update.row_key}: {e}", update.row_key) from e
                if cursor.rowcount == 0:
                    raise PersistenceError(
                        f"Row {update.row_key}: no matching row in {batch.table_name}",
                        update.row_key)
                statements.append(format_sql_with_params(sql, params))
            conn.commit()
        except Exception as e:
            conn.rollback()
            self._log(batch, time.time() - start_time, "error", str(e), statements)
            raise
        finally:
            conn.close()

        self._log(batch, time.time() - start_time, "success", statements=statements)

    __call__ = save
