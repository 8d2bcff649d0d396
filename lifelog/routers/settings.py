"""
Settings router.

GET /settings/color-scheme
PUT /settings/color-scheme
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lifelog.core.errors import ValidationError
from lifelog.db.base import get_db
from lifelog.schemas.transfer import ColorSchemeBody
from lifelog.services import app_settings

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/color-scheme", response_model=ColorSchemeBody, summary="Stored color scheme")
def get_color_scheme(db: Session = Depends(get_db)):
    return ColorSchemeBody(colorScheme=app_settings.get_color_scheme(db))


@router.put("/color-scheme", response_model=ColorSchemeBody, summary="Store the color scheme")
def put_color_scheme(payload: ColorSchemeBody, db: Session = Depends(get_db)):
    if payload.colorScheme is None:
        raise ValidationError("colorScheme is required.", field="colorScheme")
    return ColorSchemeBody(colorScheme=app_settings.set_color_scheme(db, payload.colorScheme))
