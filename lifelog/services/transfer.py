"""
Import / export of the whole store as one JSON-shaped snapshot.

Snapshot layout
---------------
{
  "version": "1.0.0",
  "exportDate": "2024-01-02T03:04:05.678Z",
  "events": [{"id", "name", "type", "unit", "color", "icon", "order",
              "createdAt", "updatedAt"}, ...],
  "eventValues": [{"eventId", "date", "value", "timestamp"}, ...],
  "settings": {"colorScheme": "light" | "dark"}
}

Public API
----------
export_snapshot(db)                                    → dict
import_snapshot(db, document, clear_existing, ...)     → ImportResult (never raises)
write_snapshot_file(document, path)                    → Path
read_snapshot_file(path)                               → dict

Import phases: VALIDATING → CLEARING → REMAPPING → WRITING_EVENTS →
WRITING_VALUES → RESTORING_SETTINGS → IDLE, or FAILED from any of them.
Event ids in a snapshot are never reused: every event is created anew and
values follow an old-id → new-id map. Clearing is committed on its own and
cannot be undone; everything after it is written in one transaction that is
rolled back if any later step fails.
"""
from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from sqlalchemy.orm import Session

from lifelog.core.errors import FormatError, IoError, LifelogException
from lifelog.db.base import commit
from lifelog.services import app_settings
from lifelog.services.events import _create_event, _delete_event, list_events
from lifelog.services.values import _set_value, get_values

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0.0"
DEFAULT_BATCH_SIZE = 100
REQUIRED_FIELDS = ("version", "events", "eventValues")

ProgressSink = Callable[[int, str], None]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class TransferPhase(str, enum.Enum):
    idle = "idle"
    exporting = "exporting"
    validating = "validating"
    clearing = "clearing"
    remapping = "remapping"
    writing_events = "writing_events"
    writing_values = "writing_values"
    restoring_settings = "restoring_settings"
    failed = "failed"


@dataclass
class ImportResult:
    success: bool
    message: str
    phase: TransferPhase = TransferPhase.idle
    failed_at: Optional[TransferPhase] = None
    events_imported: int = 0
    values_imported: int = 0
    values_skipped: int = 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def format_timestamp(value: Optional[datetime]) -> str:
    """UTC instant as YYYY-MM-DDTHH:MM:SS.mmmZ. Naive datetimes are taken as UTC."""
    if value is None:
        value = datetime.now(tz=timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Best-effort inverse of format_timestamp; None for anything unreadable."""
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def default_backup_filename(day: Optional[date] = None) -> str:
    day = day or datetime.now(tz=timezone.utc).date()
    return f"life-events-backup-{day.isoformat()}.json"


class _ProgressReporter:
    """Forwards monotonically non-decreasing percentages to an optional sink."""

    def __init__(self, sink: Optional[ProgressSink]):
        self._sink = sink
        self._last = 0

    def __call__(self, percent: int, message: str) -> None:
        percent = max(self._last, min(100, int(percent)))
        self._last = percent
        if self._sink is None:
            return
        try:
            self._sink(percent, message)
        except Exception:
            # progress is advisory
            logger.warning("Progress sink failed at %s%%", percent, exc_info=True)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def export_snapshot(db: Session) -> dict[str, Any]:
    """Materialize every event, value and exported setting into one document."""
    logger.info("Transfer phase: %s", TransferPhase.exporting.value)

    events = [
        {
            "id": e.id,
            "name": e.name,
            "type": e.type.value,
            "unit": e.unit,
            "color": e.color,
            "icon": e.icon,
            "order": e.order,
            "createdAt": format_timestamp(e.created_at),
            "updatedAt": format_timestamp(e.updated_at),
        }
        for e in list_events(db)
    ]
    values = [
        {
            "eventId": v.event_id,
            "date": v.date,
            "value": v.value,
            "timestamp": format_timestamp(v.timestamp),
        }
        for v in get_values(db)
    ]

    settings: dict[str, Any] = {}
    color_scheme = app_settings.get_color_scheme(db)
    if color_scheme:
        settings["colorScheme"] = color_scheme

    logger.info("Exported %d events and %d values", len(events), len(values))
    return {
        "version": SNAPSHOT_VERSION,
        "exportDate": format_timestamp(None),
        "events": events,
        "eventValues": values,
        "settings": settings,
    }


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def _validate(document: Any) -> None:
    if not isinstance(document, Mapping):
        raise FormatError("Invalid export file format: expected a JSON object.")
    missing = [f for f in REQUIRED_FIELDS if document.get(f) in (None, "")]
    if missing:
        raise FormatError(
            "Invalid export file format",
            details={"missing": missing},
        )
    if not isinstance(document["events"], list) or not isinstance(document["eventValues"], list):
        raise FormatError("Invalid export file format: events and eventValues must be lists.")


def _clear_store(db: Session) -> int:
    events = list_events(db)
    for event in events:
        _delete_event(db, event)
    commit(db)
    return len(events)


def _restore_settings(db: Session, settings: Any) -> None:
    if not isinstance(settings, Mapping):
        return
    scheme = settings.get("colorScheme")
    if scheme is None:
        return
    if app_settings.is_color_scheme(scheme):
        app_settings._set_setting(db, app_settings.COLOR_SCHEME_KEY, scheme)
    else:
        logger.warning("Ignoring unknown colorScheme %r in snapshot", scheme)


def import_snapshot(
    db: Session,
    document: Any,
    clear_existing: bool = False,
    on_progress: Optional[ProgressSink] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> ImportResult:
    """
    Restore a snapshot produced by export_snapshot.

    Every failure is caught and returned as `ImportResult(success=False)`.
    With `clear_existing`, current events are deleted (and committed) before
    anything is written.
    """
    report = _ProgressReporter(on_progress)
    result = ImportResult(success=False, message="")
    phase = TransferPhase.validating

    def enter(next_phase: TransferPhase) -> None:
        nonlocal phase
        phase = next_phase
        logger.debug("Transfer phase: %s", phase.value)

    try:
        report(0, "Starting import...")
        enter(TransferPhase.validating)
        _validate(document)

        if clear_existing:
            enter(TransferPhase.clearing)
            report(10, "Clearing existing data...")
            removed = _clear_store(db)
            logger.info("Cleared %d existing events before import", removed)

        enter(TransferPhase.remapping)
        incoming_events = list(document["events"])
        incoming_values = list(document["eventValues"])
        id_map: dict[Any, int] = {}

        enter(TransferPhase.writing_events)
        report(20, "Importing events...")
        total_events = len(incoming_events)
        for i, data in enumerate(incoming_events):
            event = _create_event(
                db,
                name=data.get("name"),
                type=data.get("type"),
                unit=data.get("unit"),
                color=data.get("color"),
                icon=data.get("icon"),
            )
            id_map[data.get("id")] = event.id
            result.events_imported += 1
            report(
                20 + (i + 1) * 30 // total_events,
                f"Importing events: {i + 1}/{total_events}",
            )

        enter(TransferPhase.writing_values)
        report(50, "Importing event values...")
        total_values = len(incoming_values)
        size = max(1, batch_size)
        for start in range(0, total_values, size):
            batch = incoming_values[start:start + size]
            for data in batch:
                new_id = id_map.get(data.get("eventId"))
                if new_id is None:
                    result.values_skipped += 1
                    continue
                _set_value(
                    db,
                    new_id,
                    data.get("date"),
                    data.get("value"),
                    timestamp=parse_timestamp(data.get("timestamp")),
                )
                result.values_imported += 1
            done = min(start + size, total_values)
            report(
                50 + done * 40 // total_values,
                f"Importing values: {done}/{total_values}",
            )

        enter(TransferPhase.restoring_settings)
        report(90, "Restoring settings...")
        _restore_settings(db, document.get("settings"))

        commit(db)
    except Exception as exc:
        db.rollback()
        message = exc.message if isinstance(exc, LifelogException) else str(exc) or type(exc).__name__
        logger.error("Import failed during %s: %s", phase.value, message)
        result.success = False
        result.message = message
        result.phase = TransferPhase.failed
        result.failed_at = phase
        return result

    report(100, "Import complete!")
    result.success = True
    result.phase = TransferPhase.idle
    result.message = (
        f"Successfully imported {result.events_imported} events "
        f"and {result.values_imported} values"
    )
    if result.values_skipped:
        result.message += f" ({result.values_skipped} values without a matching event skipped)"
    logger.info(result.message)
    return result


# ---------------------------------------------------------------------------
# File boundary
# ---------------------------------------------------------------------------

def write_snapshot_file(document: Mapping[str, Any], path: Union[str, Path]) -> Path:
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise IoError(f"Failed to save file: {exc}", path=str(target)) from exc
    logger.info("Snapshot written to %s", target)
    return target


def read_snapshot_file(path: Union[str, Path]) -> dict[str, Any]:
    source = Path(path)
    try:
        content = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise IoError(f"Failed to read file: {exc}", path=str(source)) from exc
    except UnicodeDecodeError as exc:
        raise FormatError("Failed to parse import file", details={"path": str(source)}) from exc
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise FormatError("Failed to parse import file", details={"path": str(source)}) from exc
