"""
App settings: small device-level preferences kept as key/value rows.

Only the color-scheme preference travels inside snapshots.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from lifelog.core.errors import ValidationError
from lifelog.db.base import commit, flush, storage_guard
from lifelog.models.app_setting import AppSetting

COLOR_SCHEME_KEY = "color-scheme"
COLOR_SCHEMES = ("light", "dark")


@storage_guard
def get_setting(db: Session, key: str) -> Optional[str]:
    row = db.get(AppSetting, key)
    return row.value if row is not None else None


@storage_guard
def _set_setting(db: Session, key: str, value: str) -> AppSetting:
    """Upsert without committing."""
    row = db.get(AppSetting, key)
    if row is None:
        row = AppSetting(key=key, value=value)
        db.add(row)
    else:
        row.value = value
    row.updated_at = datetime.now(tz=timezone.utc)
    flush(db)
    return row


@storage_guard
def set_setting(db: Session, key: str, value: str) -> AppSetting:
    row = _set_setting(db, key, value)
    commit(db)
    return row


def is_color_scheme(value: object) -> bool:
    return isinstance(value, str) and value in COLOR_SCHEMES


@storage_guard
def get_color_scheme(db: Session) -> Optional[str]:
    value = get_setting(db, COLOR_SCHEME_KEY)
    return value if is_color_scheme(value) else None


@storage_guard
def set_color_scheme(db: Session, scheme: str) -> str:
    if not is_color_scheme(scheme):
        raise ValidationError(
            f"Color scheme must be one of {', '.join(COLOR_SCHEMES)}.",
            field="colorScheme",
        )
    set_setting(db, COLOR_SCHEME_KEY, scheme)
    return scheme
