from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.customs.api import isoformat
from app.customs.constants import DOCUMENT_TYPES, label_for
from app.customs.models import Base
from app.customs.modules.dispatches.models import Dispatch


class DispatchDocument(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_dispatch_id", "dispatch_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    dispatch_id: Mapped[int] = mapped_column(ForeignKey("dispatches.id", ondelete="CASCADE"), nullable=False)

    document_type: Mapped[str] = mapped_column(String(64), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)  # as uploaded
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)  # storage key
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content_type: Mapped[str] = mapped_column(String(128), nullable=False, default="application/octet-stream")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    uploaded_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    dispatch: Mapped[Dispatch] = relationship("Dispatch", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dispatch_id": self.dispatch_id,
            "document_type": self.document_type,
            "document_type_label": label_for(DOCUMENT_TYPES, self.document_type),
            "file_name": self.file_name,
            "file_size": self.file_size,
            "content_type": self.content_type,
            "version": self.version,
            "notes": self.notes,
            "uploaded_by": self.uploaded_by,
            "created_at": isoformat(self.created_at),
        }
