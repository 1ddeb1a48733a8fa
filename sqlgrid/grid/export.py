"""
Export of result rows.

CSV is the primary format: every field double-quoted, embedded quotes
doubled, ``\\n`` between lines and a UTF-8 byte order mark up front so Excel
on Windows detects the encoding. Clipboard text, JSON and Excel exports
reuse the same row/column selection.
"""

import csv
import io
import json
import os
import time
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from .result import Column, Row
from .values import cell_value, to_text

BOM = "\ufeff"


def encode_csv(columns: Sequence[Column], rows: Sequence[Row]) -> str:
    """CSV text for ``rows``, BOM included."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([col.name for col in columns])
    for row in rows:
        writer.writerow([to_text(cell_value(row, col.name)) for col in columns])
    # no terminator after the last line
    return BOM + buf.getvalue()[:-1]


def export_filename(extension: str = "csv", timestamp_ms: Optional[int] = None) -> str:
    """``query_results_<epoch ms>.<ext>``"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"query_results_{timestamp_ms}.{extension}"


def write_csv(columns: Sequence[Column], rows: Sequence[Row],
              directory: Union[str, Path], filename: Optional[str] = None) -> Path:
    """Write the CSV export into ``directory`` and return its path."""
    path = Path(directory) / (filename or export_filename("csv"))
    # newline="" keeps "\n" separators on Windows
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(encode_csv(columns, rows))
    return path


def to_clipboard_text(columns: Sequence[Column], rows: Sequence[Row]) -> str:
    """Tab-separated text with a header line."""
    lines = ["\t".join(col.name for col in columns)]
    for row in rows:
        lines.append("\t".join(to_text(cell_value(row, col.name)) for col in columns))
    return "\n".join(lines)


def _json_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str, dict, list)):
        return value
    return to_text(value)


def write_json(columns: Sequence[Column], rows: Sequence[Row], path: Union[str, Path]) -> Path:
    path = Path(path)
    data: List[dict] = []
    for row in rows:
        data.append({col.name: _json_value(row.get(col.name)) for col in columns})
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, default=str)
    return path


def _excel_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return to_text(value)


def write_xlsx(columns: Sequence[Column], rows: Sequence[Row], path: Union[str, Path]) -> Path:
    import openpyxl

    path = Path(path)
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Results"
    ws.append([col.name for col in columns])
    for row in rows:
        ws.append([_excel_value(row.get(col.name)) for col in columns])
    wb.save(os.fspath(path))
    return path
