"""Transient records produced by the row extractor."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional


@dataclass(slots=True)
class ImportRecord:
    """Customer row after column aliasing and name splitting."""

    given_name: str = ""
    family_name: str = ""
    street: Optional[str] = None
    house_number: Optional[str] = None
    device_id: Optional[str] = None
    installed_on: Optional[date] = None
    mobile: Optional[str] = None
    landline: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.given_name} {self.family_name}".strip()

    def has_identity_fields(self) -> bool:
        return any((self.given_name, self.family_name, self.street, self.house_number))


@dataclass(slots=True)
class ReadingRecord:
    """Reading row with raw date and value cells, validated by the upserter."""

    device_id: Optional[str]
    reading_date: Any
    value: Any
