"""Customer resolution against the customer and device tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from app.schemas import Customer, MatchStrategy
from datastore.mock_tables import CustomerTable, DeviceTable
from models.records import ImportRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    customer_id: int
    created_new: bool
    note: str
    strategy: Optional[MatchStrategy] = None


class CustomerResolver:
    """Finds the customer a row refers to, creating one only when nothing matches.

    Strategies run in a fixed order and stop at the first hit: an existing
    device with the row's identifier, then an exact mobile number, then the
    exact (given name, family name, street, house number) tuple.  A match never
    modifies the stored customer.
    """

    def __init__(self, customers: CustomerTable, devices: DeviceTable) -> None:
        self.customers = customers
        self.devices = devices

    def resolve(self, record: ImportRecord) -> Resolution:
        if record.device_id:
            device = self.devices.find_by_identifier(record.device_id)
            if device is not None:
                return Resolution(
                    customer_id=device.customer_id,
                    created_new=False,
                    strategy=MatchStrategy.device,
                    note=(
                        f"Device {record.device_id} already exists, "
                        f"customer {device.customer_id}"
                    ),
                )

        if record.mobile:
            customer = self.customers.find_by_mobile(record.mobile)
            if customer is not None:
                return self._matched(
                    customer,
                    MatchStrategy.mobile,
                    f"Found customer by mobile number ({record.mobile})",
                )

        if record.has_identity_fields():
            customer = self.customers.find_by_name_and_address(
                record.given_name,
                record.family_name,
                record.street,
                record.house_number,
            )
            if customer is not None:
                return self._matched(
                    customer, MatchStrategy.name_address, "Found customer by name and address"
                )

        customer_id = self.customers.insert(record)
        logger.debug(
            "Created customer",
            extra={"customer_id": customer_id, "device_id": record.device_id},
        )
        return Resolution(
            customer_id=customer_id,
            created_new=True,
            note=f"Created customer {customer_id} ({record.display_name})",
        )

    @staticmethod
    def _matched(customer: Customer, strategy: MatchStrategy, prefix: str) -> Resolution:
        return Resolution(
            customer_id=customer.customer_id,
            created_new=False,
            strategy=strategy,
            note=f"{prefix}: customer {customer.customer_id}",
        )
