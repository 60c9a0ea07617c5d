from __future__ import annotations

from datetime import date, datetime

from services.extractor import (
    CUSTOMER_ALIASES,
    extract_customer_record,
    extract_reading_record,
    first_present,
    fold_label,
    split_full_name,
)


def test_fold_label_ignores_case_diacritics_and_separators() -> None:
    assert fold_label("Zählernummer") == fold_label("ZAEHLERNUMMER") == "zaehlernummer"
    assert fold_label("zaehler_nummer") == "zaehlernummer"
    assert fold_label("Straße") == fold_label("Strasse") == "strasse"
    assert fold_label("Zählerstand") == "zaehlerstand"


def test_first_present_follows_alias_priority() -> None:
    row = {"Vorname": "Erika", "Name": "Max Mustermann"}

    assert first_present(row, CUSTOMER_ALIASES["full_name"]) == "Max Mustermann"


def test_first_present_skips_blank_cells() -> None:
    row = {"Name": "   ", "Nachname": "Mustermann", "mobil": None, "Mobile": "0171"}

    assert first_present(row, CUSTOMER_ALIASES["full_name"]) == "Mustermann"
    assert first_present(row, CUSTOMER_ALIASES["mobile"]) == "0171"


def test_first_present_keeps_zero() -> None:
    assert first_present({"Wert": 0}, ("Zählerstand", "Wert")) == 0


def test_first_present_returns_none_when_nothing_matches() -> None:
    assert first_present({"Other": "x"}, CUSTOMER_ALIASES["street"]) is None


def test_split_full_name() -> None:
    assert split_full_name("Max Mustermann") == ("Max", "Mustermann")
    assert split_full_name("  Anna   von  Muster ") == ("Anna", "von Muster")
    assert split_full_name("Cher") == ("Cher", "")
    assert split_full_name(None) == ("", "")


def test_extract_customer_record_maps_aliased_columns() -> None:
    row = {
        "name": "Max Mustermann",
        "STRASSE": "Weg",
        "Hausnummer": 1.0,
        "Zaehlernummer": "M1",
        "Installationsdatum": datetime(2023, 5, 4, 0, 0),
        "Mobil": "0171 555",
        "Festnetz": None,
    }

    record = extract_customer_record(row)

    assert record.given_name == "Max"
    assert record.family_name == "Mustermann"
    assert record.street == "Weg"
    assert record.house_number == "1"
    assert record.device_id == "M1"
    assert record.installed_on == date(2023, 5, 4)
    assert record.mobile == "0171 555"
    assert record.landline is None


def test_extract_customer_record_tolerates_missing_columns() -> None:
    record = extract_customer_record({"Zählernummer": 4711})

    assert record.given_name == ""
    assert record.family_name == ""
    assert record.street is None
    assert record.device_id == "4711"
    assert record.has_identity_fields() is False


def test_extract_reading_record_keeps_raw_cells() -> None:
    record = extract_reading_record({"Zählernummer": "M1", "Zählerstand": "42", "Datum": "01.03.2024"})

    assert record.device_id == "M1"
    assert record.reading_date == "01.03.2024"
    assert record.value == "42"
