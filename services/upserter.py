"""Idempotent storage of meter readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from app.schemas import NoteKind
from datastore.mock_tables import ReadingTable
from models.records import ReadingRecord
from services.normalizer import normalize_date, normalize_number


@dataclass(frozen=True)
class UpsertOutcome:
    kind: NoteKind
    note: str
    reading_date: Optional[date] = None
    value: Optional[float] = None
    reason: Optional[str] = None


class ReadingUpserter:

    def __init__(self, readings: ReadingTable) -> None:
        self.readings = readings

    def upsert(self, record: ReadingRecord) -> UpsertOutcome:
        reading_date = normalize_date(record.reading_date)
        value = normalize_number(record.value)

        reason = self._invalid_reason(record, reading_date, value)
        if reason is not None:
            return UpsertOutcome(
                kind=NoteKind.skipped_invalid_reading,
                note=f"Invalid row ({reason}), skipped",
                reason=reason,
            )

        assert record.device_id is not None and reading_date is not None and value is not None
        created = self.readings.upsert(record.device_id, reading_date, value)
        action = "inserted" if created else "updated"
        return UpsertOutcome(
            kind=NoteKind.upserted_reading,
            note=(
                f"Reading for device {record.device_id} on "
                f"{reading_date.isoformat()} {action} ({value:g})"
            ),
            reading_date=reading_date,
            value=value,
        )

    @staticmethod
    def _invalid_reason(
        record: ReadingRecord, reading_date: Optional[date], value: Optional[float]
    ) -> Optional[str]:
        if not record.device_id:
            return "missing meter number"
        if record.reading_date is None:
            return "missing date"
        if reading_date is None:
            return "invalid date"
        if record.value is None:
            return "missing value"
        if value is None:
            return "invalid numeric value"
        return None
