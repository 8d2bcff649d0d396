"""
Event value request / response schemas.

Values travel as text; booleans and numbers are accepted on input and
encoded the same way the store encodes them.
"""
from __future__ import annotations

from datetime import datetime
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


class ValueSet(BaseModel):
    value: Union[bool, int, float, str] = Field(
        description="Raw value; stored as text.",
        examples=[True, 7.5, "felt great"],
    )


class EventValueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    date: str = Field(description="YYYY-MM-DD")
    value: str
    timestamp: datetime
    created_at: datetime
    updated_at: datetime
