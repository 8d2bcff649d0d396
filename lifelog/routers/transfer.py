"""
Transfer router — backup and restore.

GET  /transfer/export    — full snapshot document
POST /transfer/import    — restore a snapshot posted as the request body
POST /transfer/backup    — write a snapshot file into BACKUP_DIR
POST /transfer/restore   — import a snapshot file from BACKUP_DIR
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from lifelog.core.config import settings
from lifelog.db.base import get_db
from lifelog.schemas.common import ErrorResponse
from lifelog.schemas.transfer import (
    BackupRequest,
    BackupResponse,
    ImportResponse,
    ProgressStep,
    RestoreRequest,
    SnapshotDocument,
)
from lifelog.services.transfer import (
    ImportResult,
    default_backup_filename,
    export_snapshot,
    import_snapshot,
    read_snapshot_file,
    write_snapshot_file,
)

router = APIRouter(prefix="/transfer", tags=["transfer"])


def _run_import(db: Session, document: Any, clear_existing: bool) -> ImportResponse:
    steps: list[ProgressStep] = []
    result: ImportResult = import_snapshot(
        db,
        document,
        clear_existing=clear_existing,
        on_progress=lambda p, m: steps.append(ProgressStep(percent=p, message=m)),
        batch_size=settings.IMPORT_BATCH_SIZE,
    )
    return ImportResponse(
        success=result.success,
        message=result.message,
        phase=result.phase.value,
        failed_at=result.failed_at.value if result.failed_at else None,
        events_imported=result.events_imported,
        values_imported=result.values_imported,
        values_skipped=result.values_skipped,
        progress=steps,
    )


@router.get("/export", response_model=SnapshotDocument, summary="Export everything")
def export(db: Session = Depends(get_db)):
    return export_snapshot(db)


@router.post(
    "/import",
    response_model=ImportResponse,
    summary="Import a snapshot",
    responses={200: {"description": "Always 200; inspect `success`."}},
)
def import_(
    document: dict[str, Any] = Body(description="A document produced by /transfer/export."),
    clear_existing: bool = Query(
        default=False,
        description="Delete every current event and value first. Cannot be undone.",
    ),
    db: Session = Depends(get_db),
):
    """
    Events are re-created with new ids and values are remapped onto them.
    Values whose `eventId` matches no event in the document are skipped.
    A failure is reported in the body rather than as an HTTP error; data
    cleared by `clear_existing` is not restored on failure.
    """
    return _run_import(db, document, clear_existing)


@router.post("/backup", response_model=BackupResponse, summary="Write a backup file")
def backup(payload: Optional[BackupRequest] = None, db: Session = Depends(get_db)):
    document = export_snapshot(db)
    filename = (payload.filename if payload else None) or default_backup_filename()
    path = write_snapshot_file(document, Path(settings.BACKUP_DIR) / filename)
    return BackupResponse(
        path=str(path),
        events=len(document["events"]),
        values=len(document["eventValues"]),
    )


@router.post(
    "/restore",
    response_model=ImportResponse,
    summary="Import a backup file",
    responses={500: {"model": ErrorResponse, "description": "The file could not be read."}},
)
def restore(payload: RestoreRequest, db: Session = Depends(get_db)):
    document = read_snapshot_file(Path(settings.BACKUP_DIR) / payload.filename)
    return _run_import(db, document, payload.clear_existing)
