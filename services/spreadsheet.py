"""Decoding of uploaded spreadsheets into loosely typed rows."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, Iterable, Optional

from openpyxl import load_workbook

WORKBOOK_SUFFIXES = (".xlsx", ".xlsm")
CSV_SUFFIXES = (".csv",)
CSV_DELIMITERS = (";", ",", "\t")

Row = dict[str, Any]


def _header_label(value: Any) -> Optional[str]:
    if value is None:
        return None
    label = str(value).strip()
    return label or None


def _is_populated(cells: Iterable[Any]) -> bool:
    for cell in cells:
        if cell is None:
            continue
        if isinstance(cell, str) and not cell.strip():
            continue
        return True
    return False


def _rows_from_table(table: Iterable[tuple[Any, ...]]) -> list[Row]:
    iterator = iter(table)
    header = next(iterator, None)
    if header is None or not _is_populated(header):
        raise ValueError("Spreadsheet is missing a header row.")
    labels = [_header_label(value) for value in header]

    rows: list[Row] = []
    for cells in iterator:
        if not _is_populated(cells):
            continue
        row: Row = {}
        for label, cell in zip(labels, cells):
            if label is None or label in row:
                continue
            if isinstance(cell, str) and not cell.strip():
                cell = None
            row[label] = cell
        rows.append(row)
    return rows


def _read_workbook(content: bytes) -> list[Row]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        raise ValueError(f"Could not read workbook: {exc}") from exc
    try:
        sheet = workbook.worksheets[0]
        return _rows_from_table(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()


def _read_csv(content: bytes) -> list[Row]:
    try:
        text_value = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValueError("CSV file is not valid UTF-8.") from exc
    header_line = text_value.split("\n", 1)[0]
    delimiter = max(CSV_DELIMITERS, key=header_line.count)
    reader = csv.reader(io.StringIO(text_value, newline=""), delimiter=delimiter)
    return _rows_from_table(tuple(cells) for cells in reader)


def read_rows(filename: str, content: bytes) -> list[Row]:
    """Decode the first sheet of an ``.xlsx`` workbook or a ``.csv`` file."""
    if not content:
        raise ValueError("Uploaded file is empty.")
    suffix = Path(filename).suffix.lower()
    if suffix in WORKBOOK_SUFFIXES:
        return _read_workbook(content)
    if suffix in CSV_SUFFIXES:
        return _read_csv(content)
    allowed = ", ".join(WORKBOOK_SUFFIXES + CSV_SUFFIXES)
    raise ValueError(f"Unsupported file type {suffix or filename!r}. Allowed: {allowed}.")
