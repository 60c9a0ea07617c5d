from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_NOTE_COLORS = {
    "error": typer.colors.RED,
    "skipped_invalid_reading": typer.colors.YELLOW,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_notes(notes: Iterable[Dict[str, Any]]) -> None:
    rendered = False
    for note in notes:
        rendered = True
        kind = note.get("kind")
        color = _NOTE_COLORS.get(kind)
        if color is None and note.get("link_kind") == "warning_no_device":
            color = typer.colors.YELLOW
        typer.secho(f"  - row {note.get('row_number')} [{kind}]: {note.get('message')}", fg=color)
    if not rendered:
        typer.echo("No rows processed.")


def render_result(payload: Dict[str, Any]) -> None:
    echo_heading("Import Result")
    echo_key_values(
        [
            ("import_id", payload.get("import_id")),
            ("kind", payload.get("kind")),
            ("status", payload.get("status")),
            ("filename", payload.get("filename")),
            ("uploaded_at", payload.get("uploaded_at")),
            ("processed_at", payload.get("processed_at")),
            ("processing_ms", payload.get("processing_ms")),
        ]
    )

    summary = payload.get("summary") or {}
    typer.echo()
    echo_heading("Summary")
    if summary:
        echo_key_values(
            [
                ("row_count", summary.get("row_count")),
                ("error_count", summary.get("error_count")),
                ("skipped_count", summary.get("skipped_count")),
                ("warning_count", summary.get("warning_count")),
            ]
        )
        per_kind = summary.get("per_kind_count") or {}
        if per_kind:
            typer.echo("per_kind_count:")
            for kind, count in sorted(per_kind.items()):
                typer.echo(f"  - {kind}: {count}")
    else:
        typer.echo("No summary available.")

    typer.echo()
    echo_heading("Notes")
    render_notes(payload.get("notes") or [])
