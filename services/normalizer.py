"""Conversion of raw spreadsheet cells into canonical values.

Every function here is total: malformed input yields ``None`` and the caller
decides whether that invalidates the row.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

SERIAL_EPOCH = datetime(1899, 12, 30)

_ISO_DATE = re.compile(r"^(\d{4})[-/]?(\d{2})[-/]?(\d{2})")
_GERMAN_DATE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text_value = str(value).replace("\xa0", " ").strip()
    return text_value or None


def clean_code(value: Any) -> Optional[str]:
    """Like :func:`clean_text`, but ``12345.0`` from a numeric cell becomes ``"12345"``."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    raw = clean_text(value)
    if raw is None:
        return None
    if raw.endswith(".0") and raw[:-2].isdigit():
        return raw[:-2]
    return raw


def _safe_date(year: str, month: str, day: str) -> Optional[date]:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def normalize_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return (SERIAL_EPOCH + timedelta(days=value)).date()
        except OverflowError:
            return None

    raw = clean_text(value)
    if raw is None:
        return None
    match = _ISO_DATE.match(raw)
    if match:
        return _safe_date(*match.groups())
    match = _GERMAN_DATE.match(raw)
    if match:
        day, month, year = match.groups()
        return _safe_date(year, month, day)
    return None


def normalize_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None

    cleaned = _NON_NUMERIC.sub("", str(value))
    if cleaned.strip("-.") == "":
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None
