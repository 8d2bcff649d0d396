"""
Event store: CRUD over tracked event definitions.

Public API
----------
create_event(db, name, type, ...)    → Event        (commits)
list_events(db)                      → list[Event]
get_event(db, event_id)              → Event
update_event(db, event_id, **fields) → Event        (commits)
delete_event(db, event_id)           → None         (commits, cascades values)
reorder_events(db, event_ids)        → list[Event]  (commits)

Internal
--------
_create_event(db, ...) / _delete_event(db, event)   flush only, used by the
import engine so several writes can share one transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from lifelog.core.errors import NotFoundError, ValidationError
from lifelog.db.base import commit, flush, storage_guard
from lifelog.models.event import DEFAULT_COLOR, Event, EventType

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "type", "unit", "color", "icon", "order")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _clean_name(name: Any) -> str:
    stripped = name.strip() if isinstance(name, str) else ""
    if not stripped:
        raise ValidationError("Event name must not be empty.", field="name")
    return stripped


def _check_type(event_type: Any) -> EventType:
    try:
        return EventType(event_type)
    except ValueError:
        allowed = ", ".join(t.value for t in EventType)
        raise ValidationError(
            f"Unknown event type {event_type!r}; expected one of {allowed}.",
            field="type",
        ) from None


def _next_order(db: Session) -> int:
    current = db.query(func.max(Event.order)).scalar()
    return 0 if current is None else current + 1


# ---------------------------------------------------------------------------
# Core — flush only
# ---------------------------------------------------------------------------

@storage_guard
def _create_event(
    db: Session,
    name: str,
    type: str,
    unit: Optional[str] = None,
    color: Optional[str] = None,
    order: Optional[int] = None,
    icon: Optional[str] = None,
) -> Event:
    now = _now()
    event = Event(
        name=_clean_name(name),
        type=_check_type(type),
        unit=unit or None,
        color=color or DEFAULT_COLOR,
        icon=icon or None,
        order=_next_order(db) if order is None else order,
        created_at=now,
        updated_at=now,
    )
    db.add(event)
    flush(db)
    return event


@storage_guard
def _delete_event(db: Session, event: Event) -> None:
    # Event.values cascades, so loaded values are deleted in the same flush
    db.delete(event)
    flush(db)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@storage_guard
def create_event(
    db: Session,
    name: str,
    type: str,
    unit: Optional[str] = None,
    color: Optional[str] = None,
    order: Optional[int] = None,
    icon: Optional[str] = None,
) -> Event:
    """Create an event. With no `order` it is appended after every existing event."""
    event = _create_event(db, name, type, unit=unit, color=color, order=order, icon=icon)
    commit(db)
    db.refresh(event)
    logger.info("Created event id=%s name=%r type=%s", event.id, event.name, event.type)
    return event


@storage_guard
def list_events(db: Session) -> list[Event]:
    return db.query(Event).order_by(Event.order.asc(), Event.id.asc()).all()


@storage_guard
def get_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event", event_id)
    return event


@storage_guard
def update_event(db: Session, event_id: int, **fields: Any) -> Event:
    """
    Apply only the supplied fields. Keys outside UPDATABLE_FIELDS are rejected;
    `updated_at` is refreshed even when nothing else changes.
    """
    event = get_event(db, event_id)

    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Cannot update field(s): {', '.join(sorted(unknown))}.",
            field=sorted(unknown)[0],
        )

    if "name" in fields:
        event.name = _clean_name(fields["name"])
    if "type" in fields:
        event.type = _check_type(fields["type"])
    if "unit" in fields:
        event.unit = fields["unit"] or None
    if "color" in fields:
        event.color = fields["color"] or DEFAULT_COLOR
    if "icon" in fields:
        event.icon = fields["icon"] or None
    if "order" in fields and fields["order"] is not None:
        event.order = int(fields["order"])
    event.updated_at = _now()

    commit(db)
    db.refresh(event)
    return event


@storage_guard
def delete_event(db: Session, event_id: int) -> None:
    """Remove the event and every value recorded for it in one transaction."""
    event = get_event(db, event_id)
    _delete_event(db, event)
    commit(db)
    logger.info("Deleted event id=%s", event_id)


@storage_guard
def reorder_events(db: Session, event_ids: Iterable[int]) -> list[Event]:
    """Set `order` to each event's position in `event_ids`. All-or-nothing."""
    ids = list(event_ids)
    found = {e.id: e for e in db.query(Event).filter(Event.id.in_(ids)).all()}
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError("Event", missing[0])

    now = _now()
    for position, event_id in enumerate(ids):
        event = found[event_id]
        event.order = position
        event.updated_at = now

    commit(db)
    return list_events(db)
