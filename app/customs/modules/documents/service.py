from __future__ import annotations

import re
import time
from datetime import datetime
from typing import TYPE_CHECKING

from app.customs.api import clean_str
from app.customs.audit import record_event
from app.customs.constants import DOCUMENT_TYPES, label_for
from app.customs.modules.documents.models import DispatchDocument
from app.customs.modules.notifications.service import notify_client_of_dispatch
from app.customs.storage import Storage

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.customs.models import User
    from app.customs.modules.dispatches.models import Dispatch


class UploadError(ValueError):
    pass


_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(filename: str) -> str:
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    return _UNSAFE_CHARS.sub("_", name) or "document.bin"


def build_storage_key(dispatch_id: int, filename: str, now_ms: int | None = None) -> str:
    """dispatches/<id>/<epoch ms>_<sanitized name>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"dispatches/{dispatch_id}/{now_ms}_{sanitize_filename(filename)}"


def documents_for(s: "Session", dispatch_id: int) -> list[DispatchDocument]:
    return (
        s.query(DispatchDocument)
        .filter(DispatchDocument.dispatch_id == dispatch_id)
        .order_by(DispatchDocument.created_at.desc(), DispatchDocument.id.desc())
        .all()
    )


def next_version(s: "Session", dispatch_id: int, document_type: str) -> int:
    n = (
        s.query(DispatchDocument)
        .filter(DispatchDocument.dispatch_id == dispatch_id, DispatchDocument.document_type == document_type)
        .count()
    )
    return n + 1


def upload_document(
    s: "Session",
    storage: Storage,
    dispatch: "Dispatch",
    *,
    file_bytes: bytes,
    filename: str,
    content_type: str | None,
    document_type: str,
    user: "User",
    notes: str | None = None,
    max_bytes: int | None = None,
) -> DispatchDocument:
    """
    Store the file, then record the row. The stored object is removed again if
    the row cannot be written.
    """
    if not filename:
        raise UploadError("Please select a file.")
    if not file_bytes:
        raise UploadError("The uploaded file is empty.")
    if max_bytes is not None and len(file_bytes) > max_bytes:
        raise UploadError(f"File too large. Maximum {max_bytes // (1024 * 1024)}MB allowed.")
    doc_type = (document_type or "").strip()
    if doc_type not in DOCUMENT_TYPES:
        raise UploadError(f"Invalid document_type. Must be one of: {', '.join(DOCUMENT_TYPES)}")

    storage_key = build_storage_key(dispatch.id, filename)
    storage.put_bytes(storage_key, file_bytes, content_type=content_type)

    try:
        doc = DispatchDocument(
            dispatch_id=dispatch.id,
            document_type=doc_type,
            file_name=filename,
            file_path=storage_key,
            file_size=len(file_bytes),
            content_type=content_type or "application/octet-stream",
            version=next_version(s, dispatch.id, doc_type),
            notes=clean_str(notes),
            uploaded_by=user.id,
            created_at=datetime.utcnow(),
        )
        s.add(doc)
        s.flush()
    except Exception:
        storage.delete(storage_key)
        raise

    record_event(
        s,
        actor=user,
        action="document.upload",
        entity_type="DispatchDocument",
        entity_id=str(doc.id),
        metadata={
            "dispatch_id": dispatch.id,
            "file_name": doc.file_name,
            "document_type": doc.document_type,
            "version": doc.version,
        },
    )
    notify_client_of_dispatch(
        s,
        dispatch,
        type="document_uploaded",
        title="Nuevo Documento Disponible",
        message=(
            f"Se ha subido un nuevo documento ({label_for(DOCUMENT_TYPES, doc_type)}) "
            f"para el despacho {dispatch.dispatch_number}"
        ),
    )
    return doc
