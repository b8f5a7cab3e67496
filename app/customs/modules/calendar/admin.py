from __future__ import annotations

from flask import Blueprint, abort, g, request

from app.customs.api import fail, ok, request_payload
from app.customs.constants import EVENT_TYPES
from app.customs.db import db_session
from app.customs.models import User
from app.customs.modules.calendar.models import CalendarEvent
from app.customs.modules.calendar.service import create_event, delete_event, list_events, validate_event_payload
from app.customs.rbac import require_permission

bp = Blueprint("calendar", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/calendar")
@require_permission("calendar.view")
def events_list():
    s = db_session()
    split = list_events(s)
    return ok(
        {
            "upcoming": [e.to_dict() for e in split["upcoming"]],
            "past": [e.to_dict() for e in split["past"]],
            "event_types": [{"value": k, "label": v} for k, v in EVENT_TYPES.items()],
        }
    )


@bp.post("/calendar")
@require_permission("calendar.edit")
def events_create():
    s = db_session()
    u = _current_user()
    payload = request_payload(request)
    errors = validate_event_payload(s, payload)
    if errors:
        return fail(" ".join(errors), 400)
    event = create_event(s, payload, u)
    s.commit()
    return ok(event.to_dict(), 201)


@bp.delete("/calendar/<int:event_id>")
@require_permission("calendar.edit")
def events_delete(event_id: int):
    s = db_session()
    event = s.get(CalendarEvent, event_id)
    if not event:
        abort(404)
    delete_event(s, event, _current_user())
    s.commit()
    return ok({"deleted": event_id})
