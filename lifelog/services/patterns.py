"""
Pattern discovery over tracked history.

Two families of patterns, built from every recorded value of a live event:

* co-occurrence — for every boolean event, what the other events looked like
  on the days it was true (and on the days it was false), plus one "Overall"
  summary once enough dates exist;
* day-of-week — what every event looked like on each weekday.

Public API
----------
discover_patterns(series)   → list[Pattern]   (pure)
patterns_for_store(db)      → list[Pattern]
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from lifelog.models.event import Event, EventType
from lifelog.services.analytics import (
    BoolValue,
    NumberValue,
    TextValue,
    decode_value,
)
from lifelog.services.events import list_events
from lifelog.services.values import get_all_values

MIN_CONFIDENCE = 65
MAX_PATTERNS = 20
MIN_CONDITION_SAMPLES = 5
MIN_WEEKDAY_SAMPLES = 3
MIN_OVERALL_DATES = 10
OVERALL_CONFIDENCE = 75

_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class DataPoint:
    date: str
    value: BoolValue | NumberValue | TextValue


@dataclass
class EventSeries:
    event: Event
    points: list[DataPoint] = field(default_factory=list)


@dataclass
class Pattern:
    description: str
    confidence: int
    strength: str
    sample_size: int
    kind: str = "co-occurrence"
    event_ids: list[int] = field(default_factory=list)
    details: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def strength_for(confidence: int) -> str:
    if confidence >= 90:
        return "very-strong"
    if confidence >= 80:
        return "strong"
    if confidence >= 65:
        return "moderate"
    return "weak"


def _fmt_number(n: float) -> str:
    return str(int(n)) if float(n).is_integer() else f"{n:.1f}"


_TRUE_TEXTS = ("true", "1")
_FALSE_TEXTS = ("false", "0")


def _condition(value: BoolValue | NumberValue | TextValue) -> Optional[bool]:
    """True or False only for the literal boolean texts; None for anything else."""
    if not isinstance(value, BoolValue):
        return None
    if value.text in _TRUE_TEXTS:
        return True
    if value.text in _FALSE_TEXTS:
        return False
    return None


def summarize(event: Event, points: list[DataPoint]) -> str:
    """Short human-readable summary of an event's values on a set of days."""
    if not points:
        return "-"

    if event.type == EventType.boolean:
        true_count = sum(1 for p in points if _condition(p.value) is True)
        rate = true_count / len(points) * 100
        if rate >= 70:
            return "✓"
        if rate <= 30:
            return "✗"
        return f"{rate:.0f}%"

    if event.type == EventType.number:
        numbers = [
            p.value.value for p in points
            if isinstance(p.value, NumberValue) and not math.isnan(p.value.value)
        ]
        if not numbers:
            return "-"
        unit = event.unit or ""
        low, high = min(numbers), max(numbers)
        if low == high:
            return f"{_fmt_number(sum(numbers) / len(numbers))}{unit}"
        return f"{_fmt_number(low)}-{_fmt_number(high)}{unit}"

    counts = Counter(
        p.value.value if isinstance(p.value, TextValue) else str(p.value.text)
        for p in points
    )
    most_common, count = counts.most_common(1)[0]
    rate = count / len(points) * 100
    return most_common if rate >= 70 else f"{most_common} {rate:.0f}%"


def _summaries_on(series: list[EventSeries], dates: set[str]) -> tuple[list[str], list[int]]:
    parts, ids = [], []
    for s in series:
        matching = [p for p in s.points if p.date in dates]
        if matching:
            ids.append(s.event.id)
            parts.append(f"{s.event.name}: {summarize(s.event, matching)}")
    return parts, ids


# ---------------------------------------------------------------------------
# Pattern families
# ---------------------------------------------------------------------------

def _co_occurrence(series: list[EventSeries]) -> list[Pattern]:
    patterns: list[Pattern] = []

    for condition in (s for s in series if s.event.type == EventType.boolean):
        for wanted, label in ((True, "true"), (False, "false")):
            dates = {
                p.date for p in condition.points
                if _condition(p.value) is wanted
            }
            if len(dates) < MIN_CONDITION_SAMPLES:
                continue
            parts, ids = _summaries_on(series, dates)
            if len(parts) < 2:
                continue
            confidence = min(95, 65 + len(dates) * 2)
            patterns.append(Pattern(
                description=" → ".join(parts),
                confidence=confidence,
                strength=strength_for(confidence),
                sample_size=len(dates),
                event_ids=ids,
                details=f"When {condition.event.name} is {label} ({len(dates)} occurrences)",
            ))

    all_dates = {p.date for s in series for p in s.points}
    if len(all_dates) >= MIN_OVERALL_DATES:
        parts, ids = _summaries_on(series, all_dates)
        if len(parts) >= 2:
            patterns.append(Pattern(
                description=f"Overall: {' → '.join(parts)}",
                confidence=OVERALL_CONFIDENCE,
                strength=strength_for(OVERALL_CONFIDENCE),
                sample_size=len(all_dates),
                event_ids=ids,
                details="Overall pattern across all dates",
            ))

    return patterns


def _day_of_week(series: list[EventSeries]) -> list[Pattern]:
    by_weekday: dict[int, set[str]] = {i: set() for i in range(7)}
    for s in series:
        for p in s.points:
            by_weekday[date.fromisoformat(p.date).weekday()].add(p.date)

    patterns: list[Pattern] = []
    for weekday in range(7):
        dates = by_weekday[weekday]
        if len(dates) < MIN_WEEKDAY_SAMPLES:
            continue
        parts, ids = _summaries_on(series, dates)
        if len(parts) < 2:
            continue
        name = _DAY_NAMES[weekday]
        confidence = min(95, 65 + len(dates))
        patterns.append(Pattern(
            description=f"{name}: {' → '.join(parts)}",
            confidence=confidence,
            strength=strength_for(confidence),
            sample_size=len(dates),
            kind="day-of-week",
            event_ids=ids,
            details=f"Pattern on {name}s ({len(dates)} occurrences)",
        ))
    return patterns


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def discover_patterns(series: list[EventSeries]) -> list[Pattern]:
    if len(series) < 2:
        return []

    ordered = sorted(series, key=lambda s: (s.event.order, s.event.id))
    patterns = _co_occurrence(ordered) + _day_of_week(ordered)

    kept = [p for p in patterns if p.confidence >= MIN_CONFIDENCE]
    kept.sort(key=lambda p: p.confidence, reverse=True)
    return kept[:MAX_PATTERNS]


def patterns_for_store(db: Session) -> list[Pattern]:
    events = list_events(db)
    values = get_all_values(db)

    series = {e.id: EventSeries(event=e) for e in events}
    for v in values:
        if v.event_id not in series:
            continue
        event = series[v.event_id].event
        series[v.event_id].points.append(
            DataPoint(date=v.date, value=decode_value(v.value, event.type))
        )
    return discover_patterns(list(series.values()))
