from __future__ import annotations

from typing import Iterable

from datastore.mock_tables import (
    build_default_customer_table,
    build_default_device_table,
    build_default_reading_table,
    build_default_result_table,
)
from services.importer import build_default_importer
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


CACHES = (
    get_settings,
    build_default_customer_table,
    build_default_device_table,
    build_default_reading_table,
    build_default_result_table,
    build_default_importer,
)


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    data_root = tmp_path / "metering"

    monkeypatch.setenv("METERING_DATA_PATH", str(data_root))
    monkeypatch.setenv("IMPORT_WORKER_COUNT", "3")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    _clear_caches(CACHES)

    importer = build_default_importer()

    try:
        settings = get_settings()
        assert settings.log_level == "DEBUG"
        assert importer.customers.persistence_path == data_root / "customers.jsonl"
        assert importer.devices.persistence_path == data_root / "devices.jsonl"
        assert importer.readings.persistence_path == data_root / "readings.jsonl"
        assert importer.results.persistence_path == data_root / "imports.jsonl"
        assert importer.executor._max_workers == 3
    finally:
        importer.shutdown()
        _clear_caches(CACHES)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("METERING_DATA_PATH", "  ")
    monkeypatch.setenv("IMPORT_WORKER_COUNT", "zero")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.data_root_path is None
        assert settings.table_path("customers.jsonl") is None
        assert settings.import_workers == 2
        assert settings.log_level == "INFO"
    finally:
        get_settings.cache_clear()
