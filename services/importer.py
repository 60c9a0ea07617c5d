"""Row-by-row import orchestration and background import jobs."""

from __future__ import annotations

import json
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Event, Lock
from typing import Any, Callable, Dict, Iterable, Mapping, Optional
from uuid import uuid4

from fastapi import BackgroundTasks, UploadFile

from app.schemas import (
    ImportAccepted,
    ImportKind,
    ImportNote,
    ImportResult,
    ImportStatus,
    ImportSummary,
    NoteKind,
)
from datastore.mock_tables import (
    CustomerTable,
    DeviceTable,
    ImportResultTable,
    ReadingTable,
    build_default_customer_table,
    build_default_device_table,
    build_default_reading_table,
    build_default_result_table,
)
from services.extractor import extract_customer_record, extract_reading_record
from services.linker import DeviceLinker
from services.resolver import CustomerResolver
from services.spreadsheet import read_rows
from services.summary import Summarizer
from services.upserter import ReadingUpserter
from settings import get_settings

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
RowStep = Callable[[int, Row], ImportNote]


def _describe_row(row: Row) -> str:
    return json.dumps(dict(row), default=str, ensure_ascii=False)


def _status_for(summary: ImportSummary) -> ImportStatus:
    if summary.row_count and summary.error_count == summary.row_count:
        return ImportStatus.failed
    if summary.error_count or summary.skipped_count:
        return ImportStatus.partial
    return ImportStatus.completed


class ImportService:
    """Runs the customer and reading pipelines and tracks background import jobs.

    Rows of one batch are processed strictly in order, each row finishing all
    of its store calls before the next begins, so later rows see the devices
    and customers created by earlier ones.  Separate batches may run in
    parallel on the executor; the tables' conditional writes keep device
    identifiers and (device, date) readings unique across them.
    """

    def __init__(
        self,
        customers: CustomerTable,
        devices: DeviceTable,
        readings: ReadingTable,
        results: ImportResultTable,
        summarizer: Optional[Summarizer] = None,
        workers: int = 2,
    ) -> None:
        self.customers = customers
        self.devices = devices
        self.readings = readings
        self.results = results
        self.summarizer = summarizer or Summarizer()
        self.resolver = CustomerResolver(customers, devices)
        self.linker = DeviceLinker(devices)
        self.upserter = ReadingUpserter(readings)
        self.executor = ThreadPoolExecutor(max_workers=workers)
        self._futures: Dict[str, Future[None]] = {}
        self._cancel_events: Dict[str, Event] = {}
        self._jobs_lock = Lock()

    def run_customer_import(
        self,
        rows: Iterable[Row],
        cancel_event: Optional[Event] = None,
        import_id: Optional[str] = None,
    ) -> list[ImportNote]:
        return self._fold(rows, self._import_customer_row, cancel_event, import_id)

    def run_reading_import(
        self,
        rows: Iterable[Row],
        cancel_event: Optional[Event] = None,
        import_id: Optional[str] = None,
    ) -> list[ImportNote]:
        return self._fold(rows, self._import_reading_row, cancel_event, import_id)

    def run_rows(
        self,
        kind: ImportKind,
        rows: Iterable[Row],
        cancel_event: Optional[Event] = None,
        import_id: Optional[str] = None,
    ) -> list[ImportNote]:
        if kind is ImportKind.customers:
            return self.run_customer_import(rows, cancel_event, import_id)
        return self.run_reading_import(rows, cancel_event, import_id)

    def run_file(self, path: Path, kind: ImportKind) -> list[ImportNote]:
        """Import a local spreadsheet synchronously."""
        rows = read_rows(path.name, path.read_bytes())
        logger.info(
            "Importing file",
            extra={"import_kind": kind.value, "row_count": len(rows)},
        )
        return self.run_rows(kind, rows)

    def enqueue_import(
        self, background_tasks: BackgroundTasks, file: UploadFile, kind: ImportKind
    ) -> ImportAccepted:
        """Decode an upload and schedule its rows for background import."""
        filename = Path(file.filename or "upload.xlsx").name

        file.file.seek(0)
        contents = file.file.read()
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        background_tasks.add_task(file.close)

        rows = read_rows(filename, contents)
        return self.submit(kind, rows, filename=filename)

    def submit(
        self, kind: ImportKind, rows: list[Row], filename: Optional[str] = None
    ) -> ImportAccepted:
        import_id = str(uuid4())
        uploaded_at = datetime.now(timezone.utc)
        self.results.put_item(
            ImportResult(
                import_id=import_id,
                kind=kind,
                status=ImportStatus.queued,
                filename=filename,
                uploaded_at=uploaded_at,
            )
        )

        cancel_event = Event()
        with self._jobs_lock:
            self._cancel_events[import_id] = cancel_event
            future = self.executor.submit(
                self._run_import,
                import_id=import_id,
                kind=kind,
                rows=rows,
                filename=filename,
                uploaded_at=uploaded_at,
                cancel_event=cancel_event,
            )
            self._futures[import_id] = future
        future.add_done_callback(lambda _f, iid=import_id: self._clear_job(iid))

        logger.info(
            "Import queued",
            extra={"import_id": import_id, "import_kind": kind.value, "row_count": len(rows)},
        )
        return ImportAccepted(import_id=import_id, kind=kind, row_count=len(rows))

    def fetch_result(self, import_id: str) -> ImportResult:
        result = self.results.get_item(import_id)
        if result is None:
            raise KeyError(f"Import {import_id!r} not found.")
        return result

    def cancel(self, import_id: str) -> ImportResult:
        """Stop a running import after its current row."""
        self.fetch_result(import_id)
        with self._jobs_lock:
            cancel_event = self._cancel_events.get(import_id)
        if cancel_event is not None:
            cancel_event.set()
            logger.info("Cancellation requested", extra={"import_id": import_id})
        return self.fetch_result(import_id)

    def shutdown(self) -> None:
        """Cancel outstanding imports and release the executor."""
        with self._jobs_lock:
            jobs = list(self._futures.items())
            for cancel_event in self._cancel_events.values():
                cancel_event.set()
        for import_id, future in jobs:
            if future.cancel():
                self._mark_cancelled(import_id)
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _mark_cancelled(self, import_id: str) -> None:
        result = self.results.get_item(import_id)
        if result is None:
            return
        self.results.put_item(
            result.model_copy(
                update={
                    "status": ImportStatus.cancelled,
                    "processed_at": datetime.now(timezone.utc),
                }
            )
        )
        logger.info("Import dropped before start", extra={"import_id": import_id})

    def _clear_job(self, import_id: str) -> None:
        with self._jobs_lock:
            self._futures.pop(import_id, None)
            self._cancel_events.pop(import_id, None)

    def _fold(
        self,
        rows: Iterable[Row],
        step: RowStep,
        cancel_event: Optional[Event],
        import_id: Optional[str],
    ) -> list[ImportNote]:
        notes: list[ImportNote] = []
        for row_number, row in enumerate(rows, start=1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "Import cancelled",
                    extra={"import_id": import_id, "row_number": row_number},
                )
                break

            context = {"import_id": import_id, "row_number": row_number}
            try:
                note = step(row_number, row)
            except Exception as exc:
                logger.warning("Row failed", extra={**context, "reason": str(exc)})
                note = ImportNote(
                    row_number=row_number,
                    kind=NoteKind.error,
                    message=f"Failed to import row {_describe_row(row)}: {exc}",
                )
            else:
                if note.kind is NoteKind.skipped_invalid_reading:
                    logger.warning("Skipping row", extra={**context, "reason": note.message})
            notes.append(note)
        return notes

    def _import_customer_row(self, row_number: int, row: Row) -> ImportNote:
        record = extract_customer_record(row)
        resolution = self.resolver.resolve(record)
        link = self.linker.link(
            record.device_id,
            record.installed_on,
            resolution.customer_id,
            customer_label=record.display_name,
        )
        return ImportNote(
            row_number=row_number,
            kind=(
                NoteKind.created_customer if resolution.created_new else NoteKind.matched_customer
            ),
            link_kind=link.kind,
            message=f"{resolution.note}; {link.note}",
            customer_id=resolution.customer_id,
            match_strategy=resolution.strategy,
            device_id=record.device_id,
        )

    def _import_reading_row(self, row_number: int, row: Row) -> ImportNote:
        record = extract_reading_record(row)
        outcome = self.upserter.upsert(record)
        message = outcome.note
        if outcome.kind is NoteKind.skipped_invalid_reading:
            message = f"{message}: {_describe_row(row)}"
        return ImportNote(
            row_number=row_number,
            kind=outcome.kind,
            message=message,
            device_id=record.device_id,
            reading_date=outcome.reading_date,
            value=outcome.value,
        )

    def _run_import(
        self,
        import_id: str,
        kind: ImportKind,
        rows: list[Row],
        filename: Optional[str],
        uploaded_at: datetime,
        cancel_event: Event,
    ) -> None:
        start_time = time.perf_counter()
        self.results.put_item(
            ImportResult(
                import_id=import_id,
                kind=kind,
                status=ImportStatus.processing,
                filename=filename,
                uploaded_at=uploaded_at,
            )
        )

        notes: list[ImportNote] = []
        summary: Optional[ImportSummary] = None
        try:
            notes = self.run_rows(kind, rows, cancel_event, import_id)
            summary = self.summarizer.summarize(notes)
            if len(notes) < len(rows):
                status = ImportStatus.cancelled
            else:
                status = _status_for(summary)
        except Exception:  # pragma: no cover
            logger.exception("Import crashed", extra={"import_id": import_id})
            status = ImportStatus.failed

        processing_ms = int((time.perf_counter() - start_time) * 1000)
        self.results.put_item(
            ImportResult(
                import_id=import_id,
                kind=kind,
                status=status,
                filename=filename,
                uploaded_at=uploaded_at,
                processed_at=datetime.now(timezone.utc),
                processing_ms=processing_ms,
                summary=summary,
                notes=notes,
            )
        )
        logger.info(
            "Import finished",
            extra={
                "import_id": import_id,
                "status": status.value,
                "row_count": len(notes),
                "error_count": summary.error_count if summary else None,
                "processing_ms": processing_ms,
            },
        )


@lru_cache
def build_default_importer(
    workers: Optional[int] = None,
) -> ImportService:
    """Factory that wires the import service with the default tables."""
    worker_count = workers or get_settings().import_workers
    return ImportService(
        customers=build_default_customer_table(),
        devices=build_default_device_table(),
        readings=build_default_reading_table(),
        results=build_default_result_table(),
        workers=worker_count,
    )
