from __future__ import annotations

import json
from datetime import date
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Generic, Hashable, List, Optional, Type, TypeVar

from pydantic import BaseModel

from app.schemas import Customer, Device, ImportResult, Reading
from models.records import ImportRecord
from settings import get_settings

ItemT = TypeVar("ItemT", bound=BaseModel)


def _journal_line(item: BaseModel) -> str:
    return json.dumps(item.model_dump(mode="json"), sort_keys=True) + "\n"


class DuplicateKeyError(ValueError):
    """Raised when a conditional insert hits an existing key."""


class MockTable(Generic[ItemT]):
    """Lock-guarded item store that optionally journals itself to a JSON-lines file.

    Items go in and come out as deep copies so callers never share state with
    the table.  Subclasses define the key and add their conditional writes;
    every public method holds the lock for its whole read-modify-write.

    Each write appends one line to the journal before it becomes visible, so
    a failed write leaves the table unchanged.  Loading replays the journal
    with the last line per key winning and then compacts the file.
    """

    model: Type[ItemT]

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[Hashable, ItemT] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def _key(self, item: ItemT) -> Hashable:
        raise NotImplementedError

    def _index(self, item: ItemT) -> None:
        """Hook for subclasses keeping secondary lookups in step with ``_items``."""

    def scan(self) -> list[ItemT]:
        """Return deep copies of all stored items."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _get(self, key: Hashable) -> Optional[ItemT]:
        item = self._items.get(key)
        if item is None:
            return None
        return item.model_copy(deep=True)

    def _store(self, item: ItemT) -> None:
        self._persist(item)
        self._items[self._key(item)] = item.model_copy(deep=True)
        self._index(item)

    def _persist(self, item: ItemT) -> None:
        if not self.persistence_path:
            return
        with self.persistence_path.open("a", encoding="utf-8") as handle:
            handle.write(_journal_line(item))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            lines = self.persistence_path.read_text(encoding="utf-8").splitlines()
        except OSError:
            lines = []

        replayed = 0
        for line in lines:
            if not line.strip():
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                # torn or corrupt line
                continue
            item = self.model.model_validate(payload)
            self._items[self._key(item)] = item
            self._index(item)
            replayed += 1

        if replayed != len(self._items) or replayed != len(lines):
            self._compact()

    def _compact(self) -> None:
        if not self.persistence_path:
            return
        staging = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        staging.write_text(
            "".join(_journal_line(item) for item in self._items.values()),
            encoding="utf-8",
        )
        staging.replace(self.persistence_path)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value or None


def _identity(
    given_name: Optional[str],
    family_name: Optional[str],
    street: Optional[str],
    house_number: Optional[str],
) -> tuple[Optional[str], ...]:
    return tuple(
        _blank_to_none(value) for value in (given_name, family_name, street, house_number)
    )


class CustomerTable(MockTable[Customer]):
    model = Customer

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self._by_mobile: Dict[str, int] = {}
        self._by_identity: Dict[tuple[Optional[str], ...], int] = {}
        self._next_id = 1
        super().__init__(name, persistence_path)

    def _key(self, item: Customer) -> int:
        return item.customer_id

    def _index(self, item: Customer) -> None:
        # the earliest customer wins a shared mobile or identity tuple
        if item.mobile:
            self._by_mobile.setdefault(item.mobile, item.customer_id)
        identity = _identity(item.given_name, item.family_name, item.street, item.house_number)
        self._by_identity.setdefault(identity, item.customer_id)
        self._next_id = max(self._next_id, item.customer_id + 1)

    def get_item(self, customer_id: int) -> Optional[Customer]:
        with self._lock:
            return self._get(customer_id)

    def find_by_mobile(self, mobile: str) -> Optional[Customer]:
        with self._lock:
            customer_id = self._by_mobile.get(mobile)
            return None if customer_id is None else self._get(customer_id)

    def find_by_name_and_address(
        self,
        given_name: Optional[str],
        family_name: Optional[str],
        street: Optional[str],
        house_number: Optional[str],
    ) -> Optional[Customer]:
        """Exact match on the identity tuple; empty strings and nulls are equal."""
        wanted = _identity(given_name, family_name, street, house_number)
        with self._lock:
            customer_id = self._by_identity.get(wanted)
            return None if customer_id is None else self._get(customer_id)

    def insert(self, record: ImportRecord) -> int:
        """Create a customer from the record's fields and return its new id."""
        with self._lock:
            customer_id = self._next_id
            customer = Customer(
                customer_id=customer_id,
                given_name=record.given_name,
                family_name=record.family_name,
                street=record.street,
                house_number=record.house_number,
                mobile=record.mobile,
                landline=record.landline,
            )
            self._store(customer)
        return customer_id


class DeviceTable(MockTable[Device]):
    model = Device

    def _key(self, item: Device) -> str:
        return item.device_id

    def find_by_identifier(self, device_id: str) -> Optional[Device]:
        with self._lock:
            return self._get(device_id)

    def insert(self, device: Device) -> None:
        """Insert the device unless its identifier is already taken."""
        with self._lock:
            if device.device_id in self._items:
                raise DuplicateKeyError(
                    f"Device {device.device_id!r} already exists in table {self.name!r}."
                )
            self._store(device)

    def list_for_customer(self, customer_id: int) -> list[Device]:
        with self._lock:
            return [
                device.model_copy(deep=True)
                for device in self._items.values()
                if device.customer_id == customer_id
            ]


class ReadingTable(MockTable[Reading]):
    model = Reading

    def _key(self, item: Reading) -> tuple[str, date]:
        return (item.device_id, item.reading_date)

    def get_item(self, device_id: str, reading_date: date) -> Optional[Reading]:
        with self._lock:
            return self._get((device_id, reading_date))

    def upsert(self, device_id: str, reading_date: date, value: float) -> bool:
        """Insert or overwrite the value for (device_id, reading_date).

        Returns ``True`` when a new reading was created.
        """
        with self._lock:
            existing = self._items.get((device_id, reading_date))
            if existing is None:
                self._store(
                    Reading(device_id=device_id, reading_date=reading_date, value=value)
                )
                return True
            self._store(existing.model_copy(update={"value": value}))
            return False

    def list_for_device(self, device_id: str) -> List[Reading]:
        with self._lock:
            readings = [
                reading.model_copy(deep=True)
                for reading in self._items.values()
                if reading.device_id == device_id
            ]
        return sorted(readings, key=lambda reading: reading.reading_date)


class ImportResultTable(MockTable[ImportResult]):
    model = ImportResult

    def _key(self, item: ImportResult) -> str:
        return item.import_id

    def put_item(self, item: ImportResult) -> None:
        with self._lock:
            self._store(item)

    def get_item(self, import_id: str) -> Optional[ImportResult]:
        with self._lock:
            return self._get(import_id)


@lru_cache
def build_default_customer_table() -> CustomerTable:
    return CustomerTable(
        name="customers", persistence_path=get_settings().table_path("customers.jsonl")
    )


@lru_cache
def build_default_device_table() -> DeviceTable:
    return DeviceTable(name="devices", persistence_path=get_settings().table_path("devices.jsonl"))


@lru_cache
def build_default_reading_table() -> ReadingTable:
    return ReadingTable(
        name="readings", persistence_path=get_settings().table_path("readings.jsonl")
    )


@lru_cache
def build_default_result_table() -> ImportResultTable:
    return ImportResultTable(
        name="imports", persistence_path=get_settings().table_path("imports.jsonl")
    )
