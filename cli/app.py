from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from app.schemas import ImportKind
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import echo_heading, render_notes, render_result
from logging_config import configure_logging
from services.importer import build_default_importer


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for importing customer and meter reading spreadsheets.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _parse_kind(value: str) -> ImportKind:
    try:
        return ImportKind.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--kind") from exc


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Import API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between status checks when waiting for completion.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to wait when polling for results.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        poll_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Spreadsheet to import."),
    kind: Optional[str] = typer.Option(
        None,
        "--kind",
        "-k",
        help="customers or readings (defaults to CLI_IMPORT_KIND env or customers).",
    ),
    wait: bool = typer.Option(
        False,
        "--wait/--no-wait",
        help="Wait for the import to finish and display the result.",
    ),
) -> None:
    """Upload a spreadsheet for background import."""
    state = _get_state(ctx)
    import_kind = _parse_kind(kind or state.config.default_kind)
    typer.echo(f"Uploading {file} as {import_kind.value} to {state.config.base_url} ...")
    accepted = state.client.upload_file(file, import_kind.value)
    import_id = accepted["import_id"]
    typer.secho(
        f"Import accepted. import_id={import_id} rows={accepted.get('row_count')}",
        fg=typer.colors.GREEN,
    )

    if not wait:
        return

    interval = state.config.poll_interval
    poll_timeout = state.config.poll_timeout
    typer.echo(f"Waiting for import (interval={interval}s, timeout={poll_timeout}s)...")
    result = state.client.poll_result(import_id, interval=interval, timeout=poll_timeout)
    typer.echo()
    render_result(result)


@app.command("result")
def result_command(
    ctx: typer.Context,
    import_id: str = typer.Argument(..., help="Identifier returned from the upload command."),
) -> None:
    """Fetch status, summary and notes for an import."""
    state = _get_state(ctx)
    render_result(state.client.get_result(import_id))


@app.command("cancel")
def cancel_command(
    ctx: typer.Context,
    import_id: str = typer.Argument(..., help="Identifier returned from the upload command."),
) -> None:
    """Stop an import after the row it is currently processing."""
    state = _get_state(ctx)
    payload = state.client.cancel(import_id)
    typer.echo(f"Cancellation requested for {import_id} (status: {payload.get('status')}).")


@app.command("local")
def local_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Spreadsheet to import."),
    kind: Optional[str] = typer.Option(
        None,
        "--kind",
        "-k",
        help="customers or readings (defaults to CLI_IMPORT_KIND env or customers).",
    ),
) -> None:
    """Import a spreadsheet directly into the configured store, without the service."""
    state = _get_state(ctx)
    import_kind = _parse_kind(kind or state.config.default_kind)
    configure_logging()
    importer = build_default_importer(workers=1)
    try:
        notes = importer.run_file(file, import_kind)
    except ValueError as exc:
        typer.secho(f"Could not read {file}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    finally:
        importer.shutdown()
        build_default_importer.cache_clear()

    echo_heading(f"Imported {len(notes)} {import_kind.value} rows from {file.name}")
    render_notes(note.model_dump(mode="json") for note in notes)
