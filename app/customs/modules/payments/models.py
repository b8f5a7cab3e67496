from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.customs.api import isoformat
from app.customs.constants import PAYMENT_TYPES, label_for
from app.customs.models import Base
from app.customs.modules.dispatches.models import Dispatch


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("idx_payments_dispatch_id", "dispatch_id", "created_at"),
        Index("idx_payments_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    dispatch_id: Mapped[int] = mapped_column(ForeignKey("dispatches.id", ondelete="CASCADE"), nullable=False)

    amount: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False)
    payment_type: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending | paid
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    proof_document_id: Mapped[int | None] = mapped_column(ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    dispatch: Mapped[Dispatch] = relationship("Dispatch", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dispatch_id": self.dispatch_id,
            "amount": self.amount,
            "payment_type": self.payment_type,
            "payment_type_label": label_for(PAYMENT_TYPES, self.payment_type),
            "status": self.status,
            "due_date": isoformat(self.due_date),
            "paid_date": isoformat(self.paid_date),
            "proof_document_id": self.proof_document_id,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
