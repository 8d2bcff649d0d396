"""
Event request / response schemas.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lifelog.models.event import EventType

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class EventCreate(BaseModel):
    """A new tracked event. `order` defaults to the end of the list."""
    model_config = ConfigDict(use_enum_values=True)

    name: Annotated[str, Field(
        min_length=1,
        max_length=255,
        description="Display label. Stripped of leading/trailing whitespace.",
        examples=["Sleep Hours", "Exercise"],
    )]
    type: EventType = Field(description="boolean, number or string.")
    unit: Optional[str] = Field(default=None, max_length=64, examples=["hours"])
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR, examples=["#10b981"])
    icon: Optional[str] = Field(default=None, max_length=64)
    order: Optional[int] = Field(default=None, description="Sort key; omitted = append.")

    @field_validator("name", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("name must not be empty after stripping whitespace")
        return stripped


class EventUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[EventType] = None
    unit: Optional[str] = Field(default=None, max_length=64)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    icon: Optional[str] = Field(default=None, max_length=64)
    order: Optional[int] = None


class EventReorder(BaseModel):
    event_ids: Annotated[list[int], Field(
        min_length=1,
        description="Event ids in their new display order.",
    )]


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int
    name: str
    type: EventType
    unit: Optional[str] = None
    color: str
    icon: Optional[str] = None
    order: int
    created_at: datetime
    updated_at: datetime
