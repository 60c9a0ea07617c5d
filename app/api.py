"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Query, UploadFile, status

from app.schemas import ImportAccepted, ImportKind, ImportResult
from services.importer import ImportService, build_default_importer

router = APIRouter()


def get_importer() -> ImportService:
    return build_default_importer()


@router.post(
    "/imports",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportAccepted,
    summary="Upload a customer or reading spreadsheet for background import.",
)
async def upload_import(
    background_tasks: BackgroundTasks,
    kind: str = Query("customers", description="customers or readings (legacy aliases accepted)."),
    file: UploadFile = File(..., description="Spreadsheet (.xlsx or .csv) with one record per row."),
    importer: ImportService = Depends(get_importer),
) -> ImportAccepted:
    try:
        import_kind = ImportKind.parse(kind)
        accepted = importer.enqueue_import(background_tasks, file, import_kind)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return accepted


@router.get(
    "/imports/{import_id}",
    response_model=ImportResult,
    summary="Fetch the status and per-row notes of an import.",
)
async def get_import_result(
    import_id: str,
    importer: ImportService = Depends(get_importer),
) -> ImportResult:
    try:
        return importer.fetch_result(import_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.post(
    "/imports/{import_id}/cancel",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportResult,
    summary="Stop an import after the row it is currently processing.",
)
async def cancel_import(
    import_id: str,
    importer: ImportService = Depends(get_importer),
) -> ImportResult:
    try:
        return importer.cancel(import_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
