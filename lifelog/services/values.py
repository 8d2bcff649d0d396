"""
Value store: one text value per (event, date).

Public API
----------
set_value(db, event_id, date, raw_value)          → EventValue       (upsert, commits)
get_value(db, event_id, date)                     → EventValue | None
get_values_for_date(db, date)                     → list[EventValue]
get_values(db, date_range=None)                   → list[EventValue] (None = everything)
get_values_for_event(db, event_id, date_range)    → list[EventValue] (date ascending)
get_all_values(db)                                → list[EventValue]
delete_value(db, event_id, date)                  → bool             (commits)

Dates are `YYYY-MM-DD` strings. Because the format is zero-padded, range
filters compare the strings directly.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date as date_type, datetime, timezone
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from lifelog.core.errors import NotFoundError, ValidationError
from lifelog.db.base import commit, flush, storage_guard
from lifelog.models.event import Event
from lifelog.models.event_value import EventValue

RawValue = Union[str, bool, int, float]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# Date range
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] filter on YYYY-MM-DD strings. Either bound may be open."""
    start: Optional[str] = None
    end: Optional[str] = None

    def contains(self, day: str) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True

    def apply(self, query: Query) -> Query:
        if self.start is not None:
            query = query.filter(EventValue.date >= self.start)
        if self.end is not None:
            query = query.filter(EventValue.date <= self.end)
        return query


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def normalize_date(day: Union[str, date_type]) -> str:
    """Return `day` as YYYY-MM-DD, raising ValidationError for anything else."""
    if isinstance(day, date_type):
        return day.isoformat()
    if isinstance(day, str) and _DATE_RE.match(day):
        try:
            date_type.fromisoformat(day)
        except ValueError:
            pass
        else:
            return day
    raise ValidationError(f"Invalid date {day!r}; expected YYYY-MM-DD.", field="date")


def encode_value(raw: RawValue) -> str:
    """Values are stored as text: booleans as true/false, numbers via str()."""
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, (int, float)):
        return str(raw)
    if isinstance(raw, str):
        return raw
    raise ValidationError(f"Unsupported value {raw!r}.", field="value")


def _ensure_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event", event_id)
    return event


# ---------------------------------------------------------------------------
# Core — flush only
# ---------------------------------------------------------------------------

def _find(db: Session, event_id: int, day_str: str) -> Optional[EventValue]:
    return (
        db.query(EventValue)
        .filter(EventValue.event_id == event_id, EventValue.date == day_str)
        .first()
    )


@storage_guard
def _set_value(
    db: Session,
    event_id: int,
    day: Union[str, date_type],
    raw_value: RawValue,
    timestamp: Optional[datetime] = None,
) -> EventValue:
    """Upsert without committing. `timestamp` defaults to now."""
    _ensure_event(db, event_id)
    day_str = normalize_date(day)
    text = encode_value(raw_value)
    written_at = timestamp or _now()

    existing = _find(db, event_id, day_str)
    if existing is None:
        row = EventValue(
            event_id=event_id,
            date=day_str,
            value=text,
            timestamp=written_at,
        )
        try:
            with db.begin_nested():
                db.add(row)
            return row
        except IntegrityError:
            # Race: another writer inserted the same (event, date) first
            existing = _find(db, event_id, day_str)
            if existing is None:
                raise

    existing.value = text
    existing.timestamp = written_at
    existing.updated_at = _now()
    flush(db)
    return existing


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@storage_guard
def set_value(
    db: Session,
    event_id: int,
    day: Union[str, date_type],
    raw_value: RawValue,
) -> EventValue:
    """Record `raw_value` for the event on `day`, overwriting any earlier value."""
    row = _set_value(db, event_id, day, raw_value)
    commit(db)
    db.refresh(row)
    return row


@storage_guard
def get_value(db: Session, event_id: int, day: Union[str, date_type]) -> Optional[EventValue]:
    return _find(db, event_id, normalize_date(day))


@storage_guard
def get_values_for_date(db: Session, day: Union[str, date_type]) -> list[EventValue]:
    return (
        db.query(EventValue)
        .filter(EventValue.date == normalize_date(day))
        .order_by(EventValue.event_id.asc())
        .all()
    )


@storage_guard
def get_values(db: Session, date_range: Optional[DateRange] = None) -> list[EventValue]:
    """Every value, or only those inside `date_range`. Ordered by event, then date."""
    query = db.query(EventValue)
    if date_range is not None:
        query = date_range.apply(query)
    return query.order_by(EventValue.event_id.asc(), EventValue.date.asc()).all()


@storage_guard
def get_values_for_event(
    db: Session,
    event_id: int,
    date_range: Optional[DateRange] = None,
) -> list[EventValue]:
    query = db.query(EventValue).filter(EventValue.event_id == event_id)
    if date_range is not None:
        query = date_range.apply(query)
    return query.order_by(EventValue.date.asc()).all()


def get_all_values(db: Session) -> list[EventValue]:
    return get_values(db)


@storage_guard
def delete_value(db: Session, event_id: int, day: Union[str, date_type]) -> bool:
    """Remove the value for (event, day). Returns False when there was none."""
    row = get_value(db, event_id, day)
    if row is None:
        return False
    db.delete(row)
    commit(db)
    return True
