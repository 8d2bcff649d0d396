from datetime import datetime, timezone

from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lifelog.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class EventValue(Base):
    """One observation of one event on one calendar day."""

    __tablename__ = "event_values"
    __table_args__ = (
        UniqueConstraint("event_id", "date", name="uq_event_values_event_date"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # YYYY-MM-DD, compared lexically
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    # Text regardless of the event type; decoded by lifelog.services.analytics
    value: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    event: Mapped["Event"] = relationship(back_populates="values")  # noqa: F821
