from __future__ import annotations

from flask import Blueprint, abort, g

from app.customs.api import ok
from app.customs.constants import TRACKING_PROCESS, tracking_step
from app.customs.db import db_session
from app.customs.models import User
from app.customs.modules.clients.models import Client
from app.customs.modules.clients.service import client_for_user
from app.customs.modules.dispatches.models import Dispatch
from app.customs.modules.dispatches.service import list_dispatches, timeline_for
from app.customs.modules.documents.admin import send_document
from app.customs.modules.documents.models import DispatchDocument
from app.customs.modules.documents.service import documents_for
from app.customs.modules.payments.service import payments_for, summarize
from app.customs.rbac import require_permission

bp = Blueprint("portal", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _own_client() -> Client | None:
    return client_for_user(db_session(), _current_user().id)


def _own_dispatch_or_404(dispatch_id: int) -> Dispatch:
    # Someone else's dispatch answers exactly like a missing one.
    client = _own_client()
    d = db_session().get(Dispatch, dispatch_id)
    if not client or not d or d.client_id != client.id:
        abort(404)
    return d


@bp.get("/dispatches")
@require_permission("portal.view")
def my_dispatches():
    client = _own_client()
    if not client:
        return ok([], client=None)
    s = db_session()
    items = []
    for d in list_dispatches(s, client_id=client.id):
        row = d.to_dict(include_client=False)
        row["tracking_step"] = tracking_step(d.status)
        items.append(row)
    return ok(items, client=client.to_dict())


@bp.get("/dispatches/<int:dispatch_id>")
@require_permission("portal.view")
def my_dispatch_detail(dispatch_id: int):
    s = db_session()
    d = _own_dispatch_or_404(dispatch_id)
    payments = payments_for(s, d.id)
    data = d.to_dict()
    data["tracking_step"] = tracking_step(d.status)
    data["timeline"] = [e.to_dict() for e in timeline_for(s, d.id)]
    data["documents"] = [doc.to_dict() for doc in documents_for(s, d.id)]
    data["payments"] = [p.to_dict() for p in payments]
    data["payment_summary"] = summarize(payments)
    return ok(data)


@bp.get("/documents/<int:document_id>/download")
@require_permission("portal.view")
def my_document_download(document_id: int):
    s = db_session()
    doc = s.get(DispatchDocument, document_id)
    if not doc:
        abort(404)
    _own_dispatch_or_404(doc.dispatch_id)
    return send_document(doc, _current_user())


@bp.get("/tracking-process")
@require_permission("portal.view")
def tracking_process():
    return ok(list(TRACKING_PROCESS))
