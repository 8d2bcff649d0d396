"""
Events router.

GET    /events               — list in display order
POST   /events               — create (appended unless `order` is given)
PUT    /events/order         — reorder
GET    /events/{id}          — fetch one
PATCH  /events/{id}          — partial update
DELETE /events/{id}          — delete with all its values
GET    /events/{id}/values   — history, optionally within [start, end]
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from lifelog.db.base import get_db
from lifelog.schemas.common import ErrorResponse
from lifelog.schemas.event import EventCreate, EventOut, EventReorder, EventUpdate
from lifelog.schemas.value import EventValueOut
from lifelog.services import events as event_store
from lifelog.services.values import DateRange, get_values_for_event

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[EventOut], summary="List events in display order")
def list_events(db: Session = Depends(get_db)):
    """Ordered by `order`, ties broken by id. Empty list when nothing is tracked yet."""
    return event_store.list_events(db)


@router.post(
    "",
    response_model=EventOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
    responses={422: {"model": ErrorResponse, "description": "Empty name, unknown type or bad color."}},
)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    return event_store.create_event(
        db,
        name=payload.name,
        type=payload.type,
        unit=payload.unit,
        color=payload.color,
        order=payload.order,
        icon=payload.icon,
    )


@router.put("/order", response_model=list[EventOut], summary="Reorder events")
def reorder_events(payload: EventReorder, db: Session = Depends(get_db)):
    """Each listed event gets its position in `event_ids` as its new `order`."""
    return event_store.reorder_events(db, payload.event_ids)


@router.get(
    "/{event_id}",
    response_model=EventOut,
    summary="Fetch one event",
    responses={404: {"model": ErrorResponse, "description": "Unknown event."}},
)
def get_event(event_id: int, db: Session = Depends(get_db)):
    return event_store.get_event(db, event_id)


@router.patch(
    "/{event_id}",
    response_model=EventOut,
    summary="Update an event",
    responses={404: {"model": ErrorResponse, "description": "Unknown event."}},
)
def update_event(event_id: int, payload: EventUpdate, db: Session = Depends(get_db)):
    """Only fields present in the body are changed; `updated_at` is always refreshed."""
    fields = payload.model_dump(exclude_unset=True)
    return event_store.update_event(db, event_id, **fields)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an event and all of its values",
    responses={404: {"model": ErrorResponse, "description": "Unknown event."}},
)
def delete_event(event_id: int, db: Session = Depends(get_db)):
    event_store.delete_event(db, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{event_id}/values",
    response_model=list[EventValueOut],
    summary="Value history for one event",
    responses={404: {"model": ErrorResponse, "description": "Unknown event."}},
)
def event_values(
    event_id: int,
    start: Optional[date] = Query(default=None, description="Inclusive lower bound."),
    end: Optional[date] = Query(default=None, description="Inclusive upper bound."),
    db: Session = Depends(get_db),
):
    event_store.get_event(db, event_id)
    date_range = None
    if start is not None or end is not None:
        date_range = DateRange(
            start=start.isoformat() if start else None,
            end=end.isoformat() if end else None,
        )
    return get_values_for_event(db, event_id, date_range)
