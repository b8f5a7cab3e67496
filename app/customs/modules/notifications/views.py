from __future__ import annotations

from flask import Blueprint, abort, g

from app.customs.api import ok
from app.customs.db import db_session
from app.customs.models import User
from app.customs.modules.notifications.service import list_for_user, mark_all_read, mark_read, unread_count
from app.customs.rbac import require_permission

bp = Blueprint("notifications", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/")
@require_permission("notifications.view")
def notifications_list():
    s = db_session()
    u = _current_user()
    items = list_for_user(s, u.id)
    return ok([n.to_dict() for n in items], unread_count=unread_count(s, u.id))


@bp.post("/<int:notification_id>/read")
@require_permission("notifications.view")
def notification_mark_read(notification_id: int):
    s = db_session()
    u = _current_user()
    n = mark_read(s, u.id, notification_id)
    if not n:
        abort(404)
    s.commit()
    return ok(n.to_dict())


@bp.post("/read-all")
@require_permission("notifications.view")
def notifications_mark_all_read():
    s = db_session()
    u = _current_user()
    updated = mark_all_read(s, u.id)
    s.commit()
    return ok({"updated": updated})
