"""Summary statistics over import notes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable

from app.schemas import ImportNote, ImportSummary, NoteKind


@dataclass
class NoteCounts:
    """Running counters for a batch of notes."""

    row_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    warning_count: int = 0
    per_kind_count: Dict[str, int] = field(default_factory=dict)

    def count_kind(self, kind: NoteKind) -> None:
        self.per_kind_count[kind.value] = self.per_kind_count.get(kind.value, 0) + 1


class Summarizer:
    """Pure summary component that can be unit tested in isolation."""

    def summarize(self, notes: Iterable[ImportNote]) -> ImportSummary:
        counts = NoteCounts()

        for note in notes:
            counts.row_count += 1
            counts.count_kind(note.kind)
            if note.link_kind is not None:
                counts.count_kind(note.link_kind)

            if note.kind is NoteKind.error:
                counts.error_count += 1
            elif note.kind is NoteKind.skipped_invalid_reading:
                counts.skipped_count += 1
            if note.link_kind is NoteKind.warning_no_device:
                counts.warning_count += 1

        return ImportSummary(
            row_count=counts.row_count,
            error_count=counts.error_count,
            skipped_count=counts.skipped_count,
            warning_count=counts.warning_count,
            per_kind_count=dict(counts.per_kind_count),
        )
