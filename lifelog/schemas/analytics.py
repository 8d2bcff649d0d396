"""
Analytics response schemas.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from lifelog.schemas.value import EventValueOut


class FirstMeaningfulDateResponse(BaseModel):
    date: Optional[str] = Field(
        default=None,
        description="First date carrying a non-default value, or null.",
    )


class MeaningfulValuesResponse(BaseModel):
    total: int
    values: list[EventValueOut]


class PatternOut(BaseModel):
    description: str
    confidence: int = Field(description="0–100.")
    strength: str = Field(description="weak, moderate, strong or very-strong.")
    sample_size: int
    kind: str
    event_ids: list[int]
    details: Optional[str] = None
