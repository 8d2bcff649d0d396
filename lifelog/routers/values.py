"""
Values router.

PUT    /values/{event_id}/{day}   — upsert the value for one event on one day
DELETE /values/{event_id}/{day}   — remove it
GET    /values?day=YYYY-MM-DD     — every value recorded on one day
GET    /values/all                — every value
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from lifelog.core.errors import NotFoundError
from lifelog.db.base import get_db
from lifelog.schemas.common import ErrorResponse
from lifelog.schemas.value import EventValueOut, ValueSet
from lifelog.services import values as value_store

router = APIRouter(prefix="/values", tags=["values"])


@router.get("", response_model=list[EventValueOut], summary="Values recorded on one day")
def values_for_day(
    day: date = Query(description="Calendar day.", examples=["2024-01-02"]),
    db: Session = Depends(get_db),
):
    return value_store.get_values_for_date(db, day)


@router.get("/all", response_model=list[EventValueOut], summary="Every recorded value")
def all_values(db: Session = Depends(get_db)):
    return value_store.get_all_values(db)


@router.put(
    "/{event_id}/{day}",
    response_model=EventValueOut,
    summary="Set the value of an event for a day",
    responses={404: {"model": ErrorResponse, "description": "Unknown event."}},
)
def set_value(event_id: int, day: date, payload: ValueSet, db: Session = Depends(get_db)):
    """Overwrites any earlier value for the same event and day."""
    return value_store.set_value(db, event_id, day, payload.value)


@router.delete(
    "/{event_id}/{day}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove the value of an event for a day",
    responses={404: {"model": ErrorResponse, "description": "No value recorded."}},
)
def delete_value(event_id: int, day: date, db: Session = Depends(get_db)):
    if not value_store.delete_value(db, event_id, day):
        raise NotFoundError("EventValue", f"{event_id}/{day.isoformat()}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
