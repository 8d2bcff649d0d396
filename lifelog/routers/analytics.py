"""
Analytics router — read-only views used by charts.

GET /analytics/first-meaningful-date   — where charts should start
GET /analytics/values                  — non-default values, optional filters
GET /analytics/patterns                — discovered co-occurrence / weekday patterns
"""
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lifelog.db.base import get_db
from lifelog.schemas.analytics import (
    FirstMeaningfulDateResponse,
    MeaningfulValuesResponse,
    PatternOut,
)
from lifelog.schemas.value import EventValueOut
from lifelog.services.analytics import first_meaningful_date, meaningful_values
from lifelog.services.patterns import patterns_for_store

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d else None


@router.get(
    "/first-meaningful-date",
    response_model=FirstMeaningfulDateResponse,
    summary="First date carrying real signal",
)
def first_date(db: Session = Depends(get_db)):
    """
    Early history is often placeholder data (false, 0, blank) entered while
    getting started. Returns the first date on which any event has a
    non-default value, or `null`.
    """
    return FirstMeaningfulDateResponse(date=first_meaningful_date(db))


@router.get(
    "/values",
    response_model=MeaningfulValuesResponse,
    summary="Non-default values",
)
def non_default_values(
    start: Optional[date] = Query(default=None, description="Inclusive lower bound."),
    end: Optional[date] = Query(default=None, description="Inclusive upper bound."),
    event_id: Optional[int] = Query(default=None, description="Restrict to one event."),
    db: Session = Depends(get_db),
):
    rows = meaningful_values(db, start_date=_iso(start), end_date=_iso(end), event_id=event_id)
    return MeaningfulValuesResponse(
        total=len(rows),
        values=[EventValueOut.model_validate(r) for r in rows],
    )


@router.get("/patterns", response_model=list[PatternOut], summary="Discovered patterns")
def patterns(db: Session = Depends(get_db)):
    return [PatternOut(**asdict(p)) for p in patterns_for_store(db)]
