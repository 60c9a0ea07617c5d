from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict

import httpx
import typer

from cli.config import CLIConfig

PENDING_STATUSES = {"queued", "processing"}

_CONTENT_TYPES = {
    ".csv": "text/csv",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xlsm": "application/vnd.ms-excel.sheet.macroEnabled.12",
}


class ApiClient:
    """Minimal HTTP client for the import service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def upload_file(self, path: Path, kind: str) -> Dict[str, Any]:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")
        content_type = _CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")

        try:
            with path.open("rb") as handle:
                response = self._client.post(
                    "/imports",
                    params={"kind": kind},
                    files={"file": (path.name, handle, content_type)},
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        payload = response.json()
        if not isinstance(payload.get("import_id"), str):
            raise typer.BadParameter("Unexpected response payload when uploading file.")
        return payload

    def get_result(self, import_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/imports/{import_id}", import_id)

    def cancel(self, import_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/imports/{import_id}/cancel", import_id)

    def poll_result(self, import_id: str, interval: float, timeout: float) -> Dict[str, Any]:
        deadline = time.monotonic() + timeout
        last_payload: Dict[str, Any] | None = None
        while time.monotonic() <= deadline:
            last_payload = self.get_result(import_id)
            if last_payload.get("status") not in PENDING_STATUSES:
                return last_payload
            time.sleep(interval)
        typer.secho(
            (
                f"Timed out waiting for import {import_id}. "
                f"Last status: {last_payload.get('status') if last_payload else 'unknown'}"
            ),
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    def _request(self, method: str, url: str, import_id: str) -> Dict[str, Any]:
        try:
            response = self._client.request(method, url)
            if response.status_code == 404:
                raise typer.BadParameter(f"Import {import_id} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
