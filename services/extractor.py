"""Mapping of loosely labelled spreadsheet rows onto import records."""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Mapping, Optional, Sequence

from models.records import ImportRecord, ReadingRecord
from services.normalizer import clean_code, clean_text, normalize_date

# Canonical field -> accepted column labels, highest priority first.
CUSTOMER_ALIASES: dict[str, tuple[str, ...]] = {
    "full_name": ("Name", "Nachname", "Vorname", "Kundenname"),
    "street": ("Straße", "Strasse", "Street"),
    "house_number": ("Hausnummer", "Hausnr", "House Number"),
    "device_id": ("Zählernummer", "Zähler", "Meter Number"),
    "installed_on": ("Installationsdatum", "Installiert", "Installation Date"),
    "mobile": ("Mobilnummer", "Mobil", "Mobile"),
    "landline": ("Festnetznummer", "Festnetz", "Landline"),
}

READING_ALIASES: dict[str, tuple[str, ...]] = {
    "device_id": ("Zählernummer", "Zähler", "Meter Number"),
    "reading_date": ("Datum", "Ablesedatum", "Date"),
    "value": ("Zählerstand", "Wert", "Value"),
}

_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue"})
_NON_ALNUM = re.compile(r"[^0-9a-z]")


def fold_label(label: Any) -> str:
    """Reduce a column label to the form used for alias comparison."""
    text_value = unicodedata.normalize("NFC", str(label)).casefold().translate(_UMLAUTS)
    decomposed = unicodedata.normalize("NFKD", text_value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return _NON_ALNUM.sub("", stripped)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.replace("\xa0", " ").strip()
    return False


def first_present(row: Mapping[str, Any], labels: Sequence[str]) -> Any:
    """Return the first non-empty cell among ``labels``, in alias order."""
    folded: dict[str, Any] = {}
    for label, value in row.items():
        key = fold_label(label)
        if key not in folded or _is_empty(folded[key]):
            folded[key] = value

    for label in labels:
        value = folded.get(fold_label(label))
        if not _is_empty(value):
            return value
    return None


def split_full_name(value: Any) -> tuple[str, str]:
    """Split on the first whitespace run: ``("Max", "von Mustermann")``."""
    raw = clean_text(value)
    if raw is None:
        return "", ""
    parts = raw.split()
    return parts[0], " ".join(parts[1:])


def extract_customer_record(row: Mapping[str, Any]) -> ImportRecord:
    given_name, family_name = split_full_name(first_present(row, CUSTOMER_ALIASES["full_name"]))
    return ImportRecord(
        given_name=given_name,
        family_name=family_name,
        street=clean_text(first_present(row, CUSTOMER_ALIASES["street"])),
        house_number=clean_code(first_present(row, CUSTOMER_ALIASES["house_number"])),
        device_id=clean_code(first_present(row, CUSTOMER_ALIASES["device_id"])),
        installed_on=normalize_date(first_present(row, CUSTOMER_ALIASES["installed_on"])),
        mobile=clean_code(first_present(row, CUSTOMER_ALIASES["mobile"])),
        landline=clean_code(first_present(row, CUSTOMER_ALIASES["landline"])),
    )


def extract_reading_record(row: Mapping[str, Any]) -> ReadingRecord:
    device_id: Optional[str] = clean_code(first_present(row, READING_ALIASES["device_id"]))
    return ReadingRecord(
        device_id=device_id,
        reading_date=first_present(row, READING_ALIASES["reading_date"]),
        value=first_present(row, READING_ALIASES["value"]),
    )
