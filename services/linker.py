"""Linking of device identifiers to resolved customers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from app.schemas import Device, NoteKind
from datastore.mock_tables import DeviceTable, DuplicateKeyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkOutcome:
    kind: NoteKind
    note: str


class DeviceLinker:
    """Creates each device once; an existing device keeps its original customer."""

    def __init__(self, devices: DeviceTable) -> None:
        self.devices = devices

    def link(
        self,
        device_id: Optional[str],
        installed_on: Optional[date],
        customer_id: int,
        customer_label: str = "",
    ) -> LinkOutcome:
        if not device_id:
            label = customer_label or f"customer {customer_id}"
            return LinkOutcome(
                kind=NoteKind.warning_no_device,
                note=f"Warning: no meter number for {label}",
            )

        if self.devices.find_by_identifier(device_id) is not None:
            return self._already_present(device_id)

        try:
            self.devices.insert(
                Device(device_id=device_id, installed_on=installed_on, customer_id=customer_id)
            )
        except DuplicateKeyError:
            # Lost the race against a concurrent import.
            return self._already_present(device_id)

        logger.debug(
            "Linked device", extra={"device_id": device_id, "customer_id": customer_id}
        )
        return LinkOutcome(
            kind=NoteKind.created_device,
            note=f"Device {device_id} created for customer {customer_id}",
        )

    @staticmethod
    def _already_present(device_id: str) -> LinkOutcome:
        return LinkOutcome(
            kind=NoteKind.device_already_present,
            note=f"Device {device_id} already present, skipped",
        )
