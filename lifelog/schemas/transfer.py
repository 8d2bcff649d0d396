"""
Snapshot (backup / restore) schemas.

The document itself uses the camelCase keys of the portable snapshot format.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SnapshotEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    type: str
    unit: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    order: Optional[int] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class SnapshotValue(BaseModel):
    model_config = ConfigDict(extra="allow")

    eventId: int
    date: str
    value: str
    timestamp: Optional[str] = None


class SnapshotSettings(BaseModel):
    model_config = ConfigDict(extra="allow")

    colorScheme: Optional[Literal["light", "dark"]] = None


class SnapshotDocument(BaseModel):
    version: str
    exportDate: str
    events: list[SnapshotEvent]
    eventValues: list[SnapshotValue]
    settings: SnapshotSettings = Field(default_factory=SnapshotSettings)


class ProgressStep(BaseModel):
    percent: int
    message: str


class ImportResponse(BaseModel):
    success: bool
    message: str
    phase: str
    failed_at: Optional[str] = None
    events_imported: int
    values_imported: int
    values_skipped: int
    progress: list[ProgressStep] = Field(
        default_factory=list,
        description="Every progress report emitted during the import, in order.",
    )


class BackupRequest(BaseModel):
    filename: Optional[str] = Field(
        default=None,
        pattern=r"^[\w.\-]+\.json$",
        description="File name inside BACKUP_DIR. Defaults to life-events-backup-<today>.json.",
    )


class BackupResponse(BaseModel):
    path: str
    events: int
    values: int


class RestoreRequest(BaseModel):
    filename: str = Field(pattern=r"^[\w.\-]+\.json$")
    clear_existing: bool = False


class ColorSchemeBody(BaseModel):
    colorScheme: Optional[Literal["light", "dark"]] = None

