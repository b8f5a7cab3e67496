from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.customs.api import isoformat
from app.customs.models import Base

if TYPE_CHECKING:
    from app.customs.modules.dispatches.models import Dispatch


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (
        Index("idx_clients_company_name", "company_name"),
        Index("idx_clients_ruc", "ruc"),
        Index("idx_clients_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Portal login for this company, if one was provisioned.
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    ruc: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)

    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    dispatches: Mapped[list["Dispatch"]] = relationship(
        "Dispatch",
        back_populates="client",
        lazy="select",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company_name": self.company_name,
            "ruc": self.ruc,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "contact_person": self.contact_person,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
