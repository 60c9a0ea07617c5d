"""Pydantic schemas for stored entities and the HTTP API layer."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Customer(BaseModel):
    """A person owning zero or more metering devices."""

    customer_id: int = Field(..., ge=1)
    given_name: str = ""
    family_name: str = ""
    street: Optional[str] = None
    house_number: Optional[str] = None
    mobile: Optional[str] = None
    landline: Optional[str] = None


class Device(BaseModel):
    """A metering device keyed by its externally supplied identifier."""

    device_id: str = Field(..., min_length=1)
    installed_on: Optional[date] = None
    customer_id: int = Field(..., ge=1)


class Reading(BaseModel):
    """One dated meter value; unique per (device_id, reading_date)."""

    device_id: str = Field(..., min_length=1)
    reading_date: date
    value: float


_KIND_ALIASES = {
    "customers": "customers",
    "kunden": "customers",
    "kundendaten": "customers",
    "readings": "readings",
    "verbrauch": "readings",
    "verbrauchsdaten": "readings",
}


class ImportKind(str, Enum):
    """Which pipeline an uploaded spreadsheet is fed into."""

    customers = "customers"
    readings = "readings"

    @classmethod
    def parse(cls, value: str) -> "ImportKind":
        canonical = _KIND_ALIASES.get((value or "").strip().lower())
        if canonical is None:
            allowed = ", ".join(sorted(_KIND_ALIASES))
            raise ValueError(f"Unknown import kind {value!r}. Allowed: {allowed}.")
        return cls(canonical)


class NoteKind(str, Enum):
    created_customer = "created_customer"
    matched_customer = "matched_customer"
    created_device = "created_device"
    device_already_present = "device_already_present"
    warning_no_device = "warning_no_device"
    upserted_reading = "upserted_reading"
    skipped_invalid_reading = "skipped_invalid_reading"
    error = "error"


class MatchStrategy(str, Enum):
    device = "device"
    mobile = "mobile"
    name_address = "name_address"


class ImportNote(BaseModel):
    """Outcome of a single input row."""

    row_number: int = Field(..., ge=1)
    kind: NoteKind
    link_kind: Optional[NoteKind] = None
    message: str
    customer_id: Optional[int] = None
    match_strategy: Optional[MatchStrategy] = None
    device_id: Optional[str] = None
    reading_date: Optional[date] = None
    value: Optional[float] = None


class ImportStatus(str, Enum):
    """Import job lifecycle states exposed via the API."""

    queued = "queued"
    processing = "processing"
    completed = "completed"
    partial = "partial"
    failed = "failed"
    cancelled = "cancelled"


class ImportAccepted(BaseModel):
    """Immediate response payload after accepting a spreadsheet upload."""

    import_id: str = Field(..., description="Generated identifier for the import job.")
    kind: ImportKind
    row_count: int = Field(..., ge=0)


class ImportSummary(BaseModel):
    """Counts over the notes of a finished import."""

    row_count: int = Field(..., ge=0)
    error_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)
    warning_count: int = Field(default=0, ge=0)
    per_kind_count: Dict[str, int] = Field(default_factory=dict)


class ImportResult(BaseModel):
    """Full record representing an import job."""

    import_id: str
    kind: ImportKind
    status: ImportStatus
    filename: Optional[str] = None
    uploaded_at: datetime
    processed_at: Optional[datetime] = None
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    summary: Optional[ImportSummary] = None
    notes: List[ImportNote] = Field(default_factory=list)
