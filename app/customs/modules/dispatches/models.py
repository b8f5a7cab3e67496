from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.customs.api import isoformat
from app.customs.constants import channel_label, status_color, status_label
from app.customs.models import Base

if TYPE_CHECKING:
    from app.customs.modules.clients.models import Client


class Dispatch(Base):
    __tablename__ = "dispatches"
    __table_args__ = (
        Index("idx_dispatches_client_id", "client_id"),
        Index("idx_dispatches_dispatch_number", "dispatch_number"),
        Index("idx_dispatches_status", "status"),
        Index("idx_dispatches_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)

    dispatch_number: Mapped[str] = mapped_column(String(64), nullable=False)
    bl_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    supplier: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shipping_line: Mapped[str | None] = mapped_column(String(255), nullable=True)
    arrival_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # red | orange | green | pending (or unset)
    channel: Mapped[str | None] = mapped_column(String(16), nullable=True)
    # free-form; see constants.DISPATCH_STATUSES for the picker list
    status: Mapped[str] = mapped_column(String(64), nullable=False, default="pending")

    container_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    port: Mapped[str | None] = mapped_column(String(128), nullable=True)
    weight: Mapped[float | None] = mapped_column(Numeric(14, 3, asdecimal=False), nullable=True)
    value: Mapped[float | None] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=True)

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    client: Mapped["Client"] = relationship("Client", back_populates="dispatches", lazy="selectin")
    timeline: Mapped[list["DispatchTimelineEntry"]] = relationship(
        "DispatchTimelineEntry",
        back_populates="dispatch",
        cascade="all, delete-orphan",
        lazy="select",
        order_by="DispatchTimelineEntry.created_at.desc()",
    )

    def to_dict(self, *, include_client: bool = True) -> dict:
        out = {
            "id": self.id,
            "client_id": self.client_id,
            "dispatch_number": self.dispatch_number,
            "bl_number": self.bl_number,
            "supplier": self.supplier,
            "shipping_line": self.shipping_line,
            "arrival_date": isoformat(self.arrival_date),
            "channel": self.channel,
            "channel_label": channel_label(self.channel),
            "status": self.status,
            "status_label": status_label(self.status),
            "status_color": status_color(self.status),
            "container_number": self.container_number,
            "port": self.port,
            "weight": self.weight,
            "value": self.value,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_client:
            out["client"] = self.client.to_dict() if self.client else None
        return out


class DispatchTimelineEntry(Base):
    __tablename__ = "dispatch_timeline"
    __table_args__ = (
        Index("idx_dispatch_timeline_dispatch_id", "dispatch_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    dispatch_id: Mapped[int] = mapped_column(ForeignKey("dispatches.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    dispatch: Mapped[Dispatch] = relationship("Dispatch", back_populates="timeline", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dispatch_id": self.dispatch_id,
            "status": self.status,
            "status_label": status_label(self.status),
            "notes": self.notes,
            "updated_by": self.updated_by,
            "created_at": isoformat(self.created_at),
        }
