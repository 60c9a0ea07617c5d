from __future__ import annotations

from datetime import date

from app.schemas import Device, NoteKind
from datastore.mock_tables import DeviceTable
from services.linker import DeviceLinker


def test_link_creates_device() -> None:
    devices = DeviceTable("devices")
    linker = DeviceLinker(devices)

    outcome = linker.link("M-100", date(2023, 1, 2), customer_id=3)

    assert outcome.kind is NoteKind.created_device
    stored = devices.find_by_identifier("M-100")
    assert stored == Device(device_id="M-100", installed_on=date(2023, 1, 2), customer_id=3)


def test_link_skips_existing_device_without_relinking() -> None:
    devices = DeviceTable("devices")
    devices.insert(Device(device_id="M-100", customer_id=1))
    linker = DeviceLinker(devices)

    outcome = linker.link("M-100", None, customer_id=2)

    assert outcome.kind is NoteKind.device_already_present
    assert "already present" in outcome.note
    assert devices.find_by_identifier("M-100").customer_id == 1  # type: ignore[union-attr]
    assert len(devices) == 1


def test_link_without_device_id_warns_and_writes_nothing() -> None:
    devices = DeviceTable("devices")
    linker = DeviceLinker(devices)

    outcome = linker.link(None, None, customer_id=5, customer_label="Max Mustermann")

    assert outcome.kind is NoteKind.warning_no_device
    assert "Max Mustermann" in outcome.note
    assert len(devices) == 0


def test_link_treats_insert_conflict_as_already_present() -> None:
    class RacingDeviceTable(DeviceTable):
        """Reports the device as absent, as if another import inserts it concurrently."""

        def find_by_identifier(self, device_id: str):
            return None

    devices = RacingDeviceTable("devices")
    devices.insert(Device(device_id="M-7", customer_id=1))
    linker = DeviceLinker(devices)

    outcome = linker.link("M-7", None, customer_id=2)

    assert outcome.kind is NoteKind.device_already_present
    assert devices.scan()[0].customer_id == 1
