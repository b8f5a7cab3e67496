from __future__ import annotations

from flask import Blueprint, abort, current_app, g, request, send_file

from app.customs.api import fail, ok
from app.customs.audit import record_event
from app.customs.constants import DOCUMENT_TYPES
from app.customs.db import db_session
from app.customs.models import User
from app.customs.modules.dispatches.admin import get_dispatch_or_404
from app.customs.modules.documents.models import DispatchDocument
from app.customs.modules.documents.service import UploadError, documents_for, upload_document
from app.customs.rbac import require_permission
from app.customs.storage import StorageError, storage_from_config

bp = Blueprint("documents", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def send_document(doc: DispatchDocument, user: User):
    """Stream a stored document back under its original file name."""
    s = db_session()
    storage = storage_from_config(current_app.config)
    try:
        fobj = storage.open(doc.file_path)
    except StorageError:
        current_app.logger.exception("Stored object missing for document %s (%s)", doc.id, doc.file_path)
        abort(404)

    record_event(
        s,
        actor=user,
        action="document.download",
        entity_type="DispatchDocument",
        entity_id=str(doc.id),
        metadata={"dispatch_id": doc.dispatch_id, "file_name": doc.file_name},
    )
    s.commit()
    return send_file(
        fobj,
        mimetype=doc.content_type or "application/octet-stream",
        as_attachment=True,
        download_name=doc.file_name,
    )


@bp.get("/documents/types")
@require_permission("documents.view")
def document_types():
    return ok([{"value": k, "label": v} for k, v in DOCUMENT_TYPES.items()])


@bp.get("/dispatches/<int:dispatch_id>/documents")
@require_permission("documents.view")
def documents_list(dispatch_id: int):
    s = db_session()
    d = get_dispatch_or_404(s, dispatch_id)
    return ok([doc.to_dict() for doc in documents_for(s, d.id)])


@bp.post("/dispatches/<int:dispatch_id>/documents")
@require_permission("documents.upload")
def documents_upload(dispatch_id: int):
    s = db_session()
    u = _current_user()
    d = get_dispatch_or_404(s, dispatch_id)

    f = request.files.get("file")
    if not f or not f.filename:
        return fail("Please select a file.", 400)

    storage = storage_from_config(current_app.config)
    try:
        doc = upload_document(
            s,
            storage,
            d,
            file_bytes=f.read(),
            filename=f.filename,
            content_type=f.mimetype,
            document_type=request.form.get("document_type") or "invoice",
            notes=request.form.get("notes"),
            user=u,
            max_bytes=current_app.config.get("MAX_UPLOAD_BYTES"),
        )
    except UploadError as e:
        s.rollback()
        return fail(str(e), 400)
    except StorageError as e:
        s.rollback()
        current_app.logger.error("Document upload failed (dispatch_id=%s): %s", d.id, e)
        return fail(f"Error uploading document: {e}", 502)

    try:
        s.commit()
    except Exception:
        s.rollback()
        # the row never landed; don't leave its file behind
        storage.delete(doc.file_path)
        raise

    return ok(doc.to_dict(), 201)


@bp.get("/documents/<int:document_id>/download")
@require_permission("documents.view")
def document_download(document_id: int):
    s = db_session()
    doc = s.get(DispatchDocument, document_id)
    if not doc:
        abort(404)
    return send_document(doc, _current_user())
