from __future__ import annotations

from flask import Blueprint, abort, g, request
from sqlalchemy.orm import Session

from app.customs.api import fail, ok, request_payload
from app.customs.constants import CHANNEL_LABELS, DISPATCH_STATUSES, status_label
from app.customs.db import db_session
from app.customs.models import User
from app.customs.modules.dispatches.models import Dispatch
from app.customs.modules.dispatches.service import (
    create_dispatch,
    list_dispatches,
    timeline_for,
    update_dispatch,
    update_status,
    validate_dispatch_payload,
)
from app.customs.modules.documents.service import documents_for
from app.customs.modules.payments.service import payments_for, summarize
from app.customs.rbac import require_permission

bp = Blueprint("dispatches", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def get_dispatch_or_404(s: Session, dispatch_id: int) -> Dispatch:
    d = s.get(Dispatch, dispatch_id)
    if not d:
        abort(404)
    return d


# ---------- List ----------
@bp.get("/dispatches")
@require_permission("dispatches.view")
def dispatches_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    client_id = request.args.get("client_id", type=int)
    dispatches = list_dispatches(s, search, client_id=client_id)
    return ok([d.to_dict() for d in dispatches])


@bp.get("/dispatches/options")
@require_permission("dispatches.view")
def dispatch_options():
    """Picker values for the create/edit forms."""
    return ok(
        {
            "statuses": [{"value": st, "label": status_label(st)} for st in DISPATCH_STATUSES],
            "channels": [{"value": k, "label": v} for k, v in CHANNEL_LABELS.items()],
        }
    )


# ---------- New ----------
@bp.post("/dispatches")
@require_permission("dispatches.create")
def dispatches_create():
    s = db_session()
    u = _current_user()
    payload = request_payload(request)

    errors = validate_dispatch_payload(s, payload, creating=True)
    if errors:
        return fail(" ".join(errors), 400)

    dispatch = create_dispatch(s, payload, u)
    s.commit()
    return ok(dispatch.to_dict(), 201)


# ---------- Detail ----------
@bp.get("/dispatches/<int:dispatch_id>")
@require_permission("dispatches.view")
def dispatch_detail(dispatch_id: int):
    s = db_session()
    d = get_dispatch_or_404(s, dispatch_id)
    payments = payments_for(s, d.id)
    data = d.to_dict()
    data["timeline"] = [e.to_dict() for e in timeline_for(s, d.id)]
    data["documents"] = [doc.to_dict() for doc in documents_for(s, d.id)]
    data["payments"] = [p.to_dict() for p in payments]
    data["payment_summary"] = summarize(payments)
    return ok(data)


# ---------- Edit ----------
@bp.route("/dispatches/<int:dispatch_id>", methods=["PATCH", "PUT", "POST"])
@require_permission("dispatches.edit")
def dispatch_update(dispatch_id: int):
    s = db_session()
    u = _current_user()
    d = get_dispatch_or_404(s, dispatch_id)

    payload = request_payload(request)
    errors = validate_dispatch_payload(s, payload, creating=False)
    if errors:
        return fail(" ".join(errors), 400)

    update_dispatch(s, d, payload, u)
    s.commit()
    return ok(d.to_dict())


# ---------- Status / timeline ----------
@bp.get("/dispatches/<int:dispatch_id>/timeline")
@require_permission("dispatches.view")
def dispatch_timeline(dispatch_id: int):
    s = db_session()
    d = get_dispatch_or_404(s, dispatch_id)
    return ok([e.to_dict() for e in timeline_for(s, d.id)])


@bp.post("/dispatches/<int:dispatch_id>/status")
@require_permission("dispatches.edit")
def dispatch_status_update(dispatch_id: int):
    s = db_session()
    u = _current_user()
    d = get_dispatch_or_404(s, dispatch_id)

    payload = request_payload(request)
    try:
        entry = update_status(s, d, payload.get("status") or "", u, notes=payload.get("notes"))
    except ValueError as e:
        return fail(str(e), 400)
    s.commit()
    return ok({"dispatch": d.to_dict(), "entry": entry.to_dict()})
