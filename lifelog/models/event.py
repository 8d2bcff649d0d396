from datetime import datetime, timezone
import enum

from sqlalchemy import Integer, String, DateTime, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lifelog.db.base import Base

DEFAULT_COLOR = "#3b82f6"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class EventType(str, enum.Enum):
    boolean = "boolean"
    number = "number"
    string = "string"


class Event(Base):
    """A user-defined metric tracked per calendar day."""

    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_order", "order"),
        # ids of deleted events are never handed out again
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(
        Enum(EventType, name="event_type_enum", native_enum=False,
             create_constraint=True, validate_strings=True),
        nullable=False,
    )
    unit: Mapped[str | None] = mapped_column(String(64), nullable=True)
    color: Mapped[str] = mapped_column(String(32), nullable=False, default=DEFAULT_COLOR)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order: Mapped[int] = mapped_column("order", Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    values: Mapped[list["EventValue"]] = relationship(  # noqa: F821
        back_populates="event",
        cascade="all, delete-orphan",
    )
