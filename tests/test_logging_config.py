import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("services.importer", logging.INFO, __file__, 1, "Skipping row", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_import_context() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(import_id="job-1", row_number=3, reason="missing value", kind="x"))

    assert line == "Skipping row | import_id=job-1 row_number=3 reason=missing value"


def test_formatter_without_context_is_plain() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    assert formatter.format(_record(device_id=None)) == "INFO Skipping row"
