"""Unit tests for customer resolution."""

from __future__ import annotations

import pytest

from app.schemas import Device, MatchStrategy
from datastore.mock_tables import CustomerTable, DeviceTable
from models.records import ImportRecord
from services.resolver import CustomerResolver


@pytest.fixture()
def tables() -> tuple[CustomerTable, DeviceTable]:
    return CustomerTable("customers"), DeviceTable("devices")


@pytest.fixture()
def resolver(tables) -> CustomerResolver:
    customers, devices = tables
    return CustomerResolver(customers, devices)


def test_creates_customer_when_nothing_matches(resolver: CustomerResolver, tables) -> None:
    customers, _ = tables
    record = ImportRecord(given_name="Max", family_name="Mustermann", street="Weg", house_number="1")

    resolution = resolver.resolve(record)

    assert resolution.created_new is True
    assert resolution.strategy is None
    stored = customers.get_item(resolution.customer_id)
    assert stored is not None
    assert (stored.given_name, stored.family_name, stored.street, stored.house_number) == (
        "Max",
        "Mustermann",
        "Weg",
        "1",
    )
    assert stored.mobile is None


def test_device_match_outranks_name_and_address(resolver: CustomerResolver, tables) -> None:
    customers, devices = tables
    owner_id = customers.insert(ImportRecord(given_name="Carla", family_name="Eins"))
    other_id = customers.insert(
        ImportRecord(given_name="Dora", family_name="Zwei", street="Ring", house_number="9")
    )
    devices.insert(Device(device_id="D1", customer_id=owner_id))

    resolution = resolver.resolve(
        ImportRecord(
            given_name="Dora", family_name="Zwei", street="Ring", house_number="9", device_id="D1"
        )
    )

    assert resolution.customer_id == owner_id
    assert resolution.customer_id != other_id
    assert resolution.strategy is MatchStrategy.device
    assert resolution.created_new is False
    assert len(customers) == 2


def test_mobile_match_outranks_name_and_address(resolver: CustomerResolver, tables) -> None:
    customers, _ = tables
    by_mobile = customers.insert(ImportRecord(given_name="Ina", mobile="0171 1"))
    customers.insert(ImportRecord(given_name="Max", family_name="Mustermann"))

    resolution = resolver.resolve(
        ImportRecord(given_name="Max", family_name="Mustermann", mobile="0171 1")
    )

    assert resolution.customer_id == by_mobile
    assert resolution.strategy is MatchStrategy.mobile


def test_name_and_address_fallback_matches_exact_tuple(resolver: CustomerResolver, tables) -> None:
    customers, _ = tables
    existing = customers.insert(
        ImportRecord(given_name="Anna", family_name="Muster", street="Hauptstr", house_number="5")
    )

    resolution = resolver.resolve(
        ImportRecord(
            given_name="Anna",
            family_name="Muster",
            street="Hauptstr",
            house_number="5",
            device_id="M-200",
        )
    )

    assert resolution.customer_id == existing
    assert resolution.strategy is MatchStrategy.name_address
    assert len(customers) == 1


def test_name_and_address_requires_every_component(resolver: CustomerResolver, tables) -> None:
    customers, _ = tables
    customers.insert(
        ImportRecord(given_name="Anna", family_name="Muster", street="Hauptstr", house_number="5")
    )

    resolution = resolver.resolve(
        ImportRecord(given_name="Anna", family_name="Muster", street="Hauptstr", house_number="7")
    )

    assert resolution.created_new is True
    assert len(customers) == 2


def test_missing_components_match_missing_components(resolver: CustomerResolver, tables) -> None:
    customers, _ = tables
    existing = customers.insert(ImportRecord(given_name="Cher"))

    resolution = resolver.resolve(ImportRecord(given_name="Cher", family_name=""))

    assert resolution.customer_id == existing


def test_device_only_rows_create_separate_customers(resolver: CustomerResolver, tables) -> None:
    customers, _ = tables

    first = resolver.resolve(ImportRecord(device_id="X1"))
    second = resolver.resolve(ImportRecord(device_id="X2"))

    assert first.created_new and second.created_new
    assert first.customer_id != second.customer_id
    assert len(customers) == 2


def test_match_never_updates_stored_customer(resolver: CustomerResolver, tables) -> None:
    customers, _ = tables
    existing = customers.insert(ImportRecord(given_name="Ina", mobile="0171", landline="030 1"))

    resolver.resolve(ImportRecord(given_name="Ina", family_name="Neu", mobile="0171", landline="040 2"))

    stored = customers.get_item(existing)
    assert stored is not None
    assert stored.family_name == ""
    assert stored.landline == "030 1"
