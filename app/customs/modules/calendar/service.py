from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from app.customs.api import clean_str, parse_date
from app.customs.audit import record_event
from app.customs.constants import DEFAULT_EVENT_TYPE, EVENT_TYPES, label_for
from app.customs.modules.calendar.models import CalendarEvent
from app.customs.modules.dispatches.models import Dispatch
from app.customs.modules.notifications.service import client_user_id, notify_user

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.customs.models import User


def validate_event_payload(s: "Session", payload: dict) -> list[str]:
    errors = []
    if not clean_str(payload.get("title")):
        errors.append("title is required.")
    try:
        if parse_date(payload.get("event_date")) is None:
            errors.append("event_date is required.")
    except ValueError as e:
        errors.append(str(e))
    event_type = clean_str(payload.get("event_type")) or DEFAULT_EVENT_TYPE
    if event_type not in EVENT_TYPES:
        errors.append(f"Invalid event_type. Must be one of: {', '.join(EVENT_TYPES)}")
    dispatch_id = payload.get("dispatch_id")
    if dispatch_id not in (None, ""):
        try:
            found = s.get(Dispatch, int(dispatch_id))
        except (TypeError, ValueError):
            found = None
        if not found:
            errors.append("Dispatch not found.")
    return errors


def list_events(s: "Session", today: date | None = None) -> dict[str, list[CalendarEvent]]:
    """All events by date, split around `today` (today counts as upcoming)."""
    today = today or date.today()
    events = s.query(CalendarEvent).order_by(CalendarEvent.event_date.asc(), CalendarEvent.id.asc()).all()
    return {
        "upcoming": [e for e in events if e.event_date >= today],
        "past": [e for e in events if e.event_date < today],
    }


def create_event(s: "Session", payload: dict, user: "User") -> CalendarEvent:
    dispatch_id = payload.get("dispatch_id")
    event = CalendarEvent(
        title=clean_str(payload.get("title")) or "",
        description=clean_str(payload.get("description")),
        event_date=parse_date(payload.get("event_date")),
        event_type=clean_str(payload.get("event_type")) or DEFAULT_EVENT_TYPE,
        dispatch_id=int(dispatch_id) if dispatch_id not in (None, "") else None,
        reminder_sent=False,
        created_by=user.id,
        created_at=datetime.utcnow(),
    )
    s.add(event)
    s.flush()
    record_event(
        s,
        actor=user,
        action="calendar.create",
        entity_type="CalendarEvent",
        entity_id=str(event.id),
        metadata={"title": event.title, "event_date": event.event_date, "event_type": event.event_type},
    )
    return event


def delete_event(s: "Session", event: CalendarEvent, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="calendar.delete",
        entity_type="CalendarEvent",
        entity_id=str(event.id),
        metadata={"title": event.title, "event_date": event.event_date},
    )
    s.delete(event)


def send_due_reminders(s: "Session", today: date, days_ahead: int) -> int:
    """
    Notify about events falling within [today, today + days_ahead] that have
    not been reminded yet: the creator, plus the client user of a linked
    dispatch. Returns the number of events reminded.
    """
    horizon = today + timedelta(days=days_ahead)
    due = (
        s.query(CalendarEvent)
        .filter(
            CalendarEvent.reminder_sent.is_(False),
            CalendarEvent.event_date >= today,
            CalendarEvent.event_date <= horizon,
        )
        .order_by(CalendarEvent.event_date.asc(), CalendarEvent.id.asc())
        .all()
    )
    for event in due:
        recipients: set[int] = set()
        if event.created_by:
            recipients.add(event.created_by)
        if event.dispatch_id:
            dispatch = s.get(Dispatch, event.dispatch_id)
            uid = client_user_id(s, dispatch.client_id) if dispatch else None
            if uid:
                recipients.add(uid)
        type_label = label_for(EVENT_TYPES, event.event_type)
        for uid in sorted(recipients):
            notify_user(
                s,
                user_id=uid,
                dispatch_id=event.dispatch_id,
                type="event_reminder",
                title=f"Recordatorio: {event.title}",
                message=f"{type_label} programado para el {event.event_date.isoformat()}",
            )
        event.reminder_sent = True
    return len(due)
