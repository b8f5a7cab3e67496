from __future__ import annotations

from flask import Blueprint, g
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.customs.api import ok
from app.customs.constants import COMPLETED_STATUS, DISPATCH_STATUSES, PAYMENT_PENDING, status_color, status_label
from app.customs.db import db_session
from app.customs.modules.clients.models import Client
from app.customs.modules.dispatches.models import Dispatch
from app.customs.modules.payments.models import Payment
from app.customs.rbac import require_permission, user_role_keys

bp = Blueprint("admin", __name__)


def dashboard_stats(s: Session) -> dict:
    total_dispatches = s.query(func.count(Dispatch.id)).scalar() or 0
    active_dispatches = (
        s.query(func.count(Dispatch.id)).filter(Dispatch.status != COMPLETED_STATUS).scalar() or 0
    )
    total_clients = s.query(func.count(Client.id)).scalar() or 0
    pending_payments = (
        s.query(func.count(Payment.id)).filter(Payment.status == PAYMENT_PENDING).scalar() or 0
    )

    counts = dict(s.query(Dispatch.status, func.count(Dispatch.id)).group_by(Dispatch.status).all())
    by_status = [
        {
            "status": st,
            "label": status_label(st),
            "color": status_color(st),
            "count": int(counts.get(st, 0)),
        }
        for st in DISPATCH_STATUSES
    ]
    return {
        "total_dispatches": int(total_dispatches),
        "active_dispatches": int(active_dispatches),
        "total_clients": int(total_clients),
        "pending_payments": int(pending_payments),
        "dispatches_by_status": by_status,
    }


@bp.get("/")
@require_permission("admin.view")
def index():
    return ok(dashboard_stats(db_session()))


@bp.get("/me")
@require_permission("admin.view")
def me():
    user = getattr(g, "current_user", None)
    perm_keys = sorted({p.key for r in (user.roles or []) for p in (r.permissions or [])})
    return ok(
        {
            "email": user.email,
            "profile": user.profile.to_dict() if user.profile else None,
            "roles": sorted(user_role_keys(user)),
            "permissions": perm_keys,
        }
    )
