"""
Analytics filter: separate "recorded but uninteresting" values from real signal.

Values are stored as text. They are decoded here into typed values so that
the default-value rules work on bools, numbers and text instead of strings:

  boolean  default iff the text is "false" or "0"
  number   default iff the leading number parses to exactly 0
  string   default iff the text is blank

The pure functions take already-loaded events and values and never touch the
database. `first_meaningful_date` / `meaningful_values` are the thin
db-backed wrappers used by the HTTP layer.
"""
from __future__ import annotations

import math
import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from sqlalchemy.orm import Session

from lifelog.models.event import Event, EventType
from lifelog.models.event_value import EventValue
from lifelog.services.events import list_events
from lifelog.services.values import DateRange, get_all_values

# Longest numeric prefix, e.g. "12.5kg" -> "12.5", "0abc" -> "0"
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


# ---------------------------------------------------------------------------
# Typed values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BoolValue:
    value: bool
    text: str


@dataclass(frozen=True)
class NumberValue:
    value: float  # NaN when the text has no leading number
    text: str


@dataclass(frozen=True)
class TextValue:
    value: str


TypedValue = Union[BoolValue, NumberValue, TextValue]


def parse_number(text: str) -> float:
    match = _NUMBER_PREFIX.match(text.strip())
    if match is None:
        return math.nan
    return float(match.group(0))


def decode_value(text: str, event_type: Union[EventType, str]) -> TypedValue:
    kind = EventType(event_type)
    if kind is EventType.boolean:
        return BoolValue(value=text not in ("false", "0"), text=text)
    if kind is EventType.number:
        return NumberValue(value=parse_number(text), text=text)
    return TextValue(value=text)


def is_default(typed: TypedValue) -> bool:
    if isinstance(typed, BoolValue):
        return not typed.value
    if isinstance(typed, NumberValue):
        return typed.value == 0
    return typed.value.strip() == ""


def is_default_value(value: str, event_type: Union[EventType, str]) -> bool:
    return is_default(decode_value(value, event_type))


# ---------------------------------------------------------------------------
# Filters over loaded data
# ---------------------------------------------------------------------------

def _types_by_event(events: Iterable[Event]) -> dict[int, str]:
    return {e.id: e.type for e in events}


def find_first_meaningful_date(
    events: Sequence[Event],
    values: Iterable[EventValue],
) -> Optional[str]:
    """
    First date, in ascending order, on which some still-existing event has a
    non-default value. None when there are no events or no such date.
    """
    types = _types_by_event(events)
    if not types:
        return None

    by_date: dict[str, list[EventValue]] = defaultdict(list)
    for v in values:
        by_date[v.date].append(v)

    for day in sorted(by_date):
        for v in by_date[day]:
            event_type = types.get(v.event_id)
            if event_type is not None and not is_default_value(v.value, event_type):
                return day
    return None


def filter_non_default(
    events: Sequence[Event],
    values: Iterable[EventValue],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    event_id: Optional[int] = None,
) -> list[EventValue]:
    """
    Values that belong to a known event, fall inside the inclusive date range
    and carry a non-default value. Values of deleted events are dropped.
    Input order is preserved.
    """
    types = _types_by_event(events)
    window = DateRange(start=start_date, end=end_date)

    kept = []
    for v in values:
        if event_id is not None and v.event_id != event_id:
            continue
        event_type = types.get(v.event_id)
        if event_type is None:
            continue
        if not window.contains(v.date):
            continue
        if is_default_value(v.value, event_type):
            continue
        kept.append(v)
    return kept


# ---------------------------------------------------------------------------
# DB-backed helpers
# ---------------------------------------------------------------------------

def first_meaningful_date(db: Session) -> Optional[str]:
    return find_first_meaningful_date(list_events(db), get_all_values(db))


def meaningful_values(
    db: Session,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    event_id: Optional[int] = None,
) -> list[EventValue]:
    return filter_non_default(
        list_events(db),
        get_all_values(db),
        start_date=start_date,
        end_date=end_date,
        event_id=event_id,
    )
