from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.customs.api import fail, ok, parse_date, request_payload
from app.customs.constants import PAYMENT_TYPES
from app.customs.db import db_session
from app.customs.models import User
from app.customs.modules.dispatches.admin import get_dispatch_or_404
from app.customs.modules.payments.models import Payment
from app.customs.modules.payments.service import (
    add_payment,
    payments_for,
    set_payment_status,
    summarize,
    validate_payment_payload,
)
from app.customs.rbac import require_permission

bp = Blueprint("payments", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/payments/types")
@require_permission("payments.view")
def payment_types():
    return ok([{"value": k, "label": v} for k, v in PAYMENT_TYPES.items()])


@bp.get("/dispatches/<int:dispatch_id>/payments")
@require_permission("payments.view")
def payments_list(dispatch_id: int):
    s = db_session()
    d = get_dispatch_or_404(s, dispatch_id)
    payments = payments_for(s, d.id)
    return ok([p.to_dict() for p in payments], summary=summarize(payments))


@bp.post("/dispatches/<int:dispatch_id>/payments")
@require_permission("payments.create")
def payments_create(dispatch_id: int):
    s = db_session()
    u = _current_user()
    d = get_dispatch_or_404(s, dispatch_id)

    payload = request_payload(request)
    errors = validate_payment_payload(s, d.id, payload)
    if errors:
        return fail(" ".join(errors), 400)

    payment = add_payment(s, d, payload, u)
    s.commit()
    return ok(payment.to_dict(), 201)


@bp.post("/payments/<int:payment_id>/status")
@require_permission("payments.edit")
def payment_status_update(payment_id: int):
    s = db_session()
    u = _current_user()
    payment = s.get(Payment, payment_id)
    if not payment:
        abort(404)

    payload = request_payload(request)
    try:
        set_payment_status(
            s,
            payment,
            (payload.get("status") or "").strip(),
            u,
            paid_date=parse_date(payload.get("paid_date")),
        )
    except ValueError as e:
        return fail(str(e), 400)
    s.commit()
    return ok(payment.to_dict())
