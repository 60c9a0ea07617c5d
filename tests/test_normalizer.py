"""Unit tests for cell value normalization."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from services.normalizer import clean_code, clean_text, normalize_date, normalize_number


@pytest.mark.parametrize(
    "raw, expected",
    [
        (date(2024, 3, 1), date(2024, 3, 1)),
        (datetime(2024, 3, 1, 17, 45), date(2024, 3, 1)),
        ("2024-03-01", date(2024, 3, 1)),
        ("2024/03/01", date(2024, 3, 1)),
        ("2024-03-01T08:15:00Z", date(2024, 3, 1)),
        ("2024-03-01 08:15", date(2024, 3, 1)),
        ("01.03.2024", date(2024, 3, 1)),
        (" 1.3.2024 ", date(2024, 3, 1)),
        (45352, date(2024, 3, 1)),
        (45352.75, date(2024, 3, 1)),
        (1, date(1899, 12, 31)),
    ],
)
def test_normalize_date_accepts_supported_encodings(raw, expected) -> None:
    assert normalize_date(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [None, "", "   ", "yesterday", "2024-13-45", "31.02.2024", float("nan"), True, 1e20],
)
def test_normalize_date_returns_none_for_invalid_input(raw) -> None:
    assert normalize_date(raw) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        (42, 42.0),
        (12.5, 12.5),
        ("42", 42.0),
        ("1234.5 kWh", 1234.5),
        ("-7", -7.0),
        (" 0 ", 0.0),
        ("1 234", 1234.0),
    ],
)
def test_normalize_number_parses_values(raw, expected) -> None:
    assert normalize_number(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [None, "", "kWh", ".", "-", "-.", "1.2.3", "1-2", float("nan"), float("inf"), False],
)
def test_normalize_number_returns_none_for_invalid_input(raw) -> None:
    assert normalize_number(raw) is None


def test_clean_text_and_code() -> None:
    assert clean_text("  Hauptstr\xa0 ") == "Hauptstr"
    assert clean_text("   ") is None
    assert clean_text(None) is None
    assert clean_code(12345.0) == "12345"
    assert clean_code("12345.0") == "12345"
    assert clean_code(5) == "5"
    assert clean_code("M-100") == "M-100"
    assert clean_code(12.5) == "12.5"
