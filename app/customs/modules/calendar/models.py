from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.customs.api import isoformat
from app.customs.constants import EVENT_TYPES, label_for
from app.customs.models import Base


class CalendarEvent(Base):
    __tablename__ = "calendar_events"
    __table_args__ = (
        Index("idx_calendar_events_event_date", "event_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    dispatch_id: Mapped[int | None] = mapped_column(ForeignKey("dispatches.id", ondelete="SET NULL"), nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, default="deadline")
    reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dispatch_id": self.dispatch_id,
            "title": self.title,
            "description": self.description,
            "event_date": isoformat(self.event_date),
            "event_type": self.event_type,
            "event_type_label": label_for(EVENT_TYPES, self.event_type),
            "reminder_sent": self.reminder_sent,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
        }
