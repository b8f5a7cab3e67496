from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_

from app.customs.api import clean_str, parse_date, parse_number
from app.customs.audit import record_event
from app.customs.constants import CHANNELS, DEFAULT_CHANNEL, DEFAULT_DISPATCH_STATUS
from app.customs.modules.clients.models import Client
from app.customs.modules.dispatches.models import Dispatch, DispatchTimelineEntry
from app.customs.modules.notifications.service import notify_client_of_dispatch

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.customs.models import User


EDITABLE_FIELDS = (
    "dispatch_number",
    "bl_number",
    "supplier",
    "shipping_line",
    "arrival_date",
    "channel",
    "status",
    "container_number",
    "port",
    "weight",
    "value",
)


def _coerce(field: str, raw: Any) -> Any:
    if field == "arrival_date":
        return parse_date(raw)
    if field in ("weight", "value"):
        return parse_number(raw, field)
    return clean_str(raw)


def validate_dispatch_payload(s: "Session", payload: dict, *, creating: bool) -> list[str]:
    """Validate dispatch creation/update payload. Returns list of errors."""
    errors = []
    if creating:
        client_id = payload.get("client_id")
        try:
            client_id = int(client_id) if client_id not in (None, "") else None
        except (TypeError, ValueError):
            client_id = None
            errors.append("client_id must be numeric.")
        else:
            if client_id is None:
                errors.append("client_id is required.")
            elif not s.get(Client, client_id):
                errors.append("Client not found.")
    if creating or "dispatch_number" in payload:
        if not clean_str(payload.get("dispatch_number")):
            errors.append("dispatch_number is required.")
    if "status" in payload and not creating and not clean_str(payload.get("status")):
        errors.append("status cannot be empty.")
    channel = clean_str(payload.get("channel"))
    if channel and channel not in CHANNELS:
        errors.append(f"Invalid channel. Must be one of: {', '.join(CHANNELS)}")
    for field in ("arrival_date", "weight", "value"):
        if field in payload:
            try:
                _coerce(field, payload.get(field))
            except ValueError as e:
                errors.append(str(e))
    return errors


def list_dispatches(s: "Session", search: str | None = None, client_id: int | None = None) -> list[Dispatch]:
    q = s.query(Dispatch).join(Client, Dispatch.client_id == Client.id)
    if client_id is not None:
        q = q.filter(Dispatch.client_id == client_id)
    term = (search or "").strip().lower()
    if term:
        like = f"%{term}%"
        q = q.filter(
            or_(
                func.lower(Dispatch.dispatch_number).like(like),
                func.lower(Dispatch.bl_number).like(like),
                func.lower(Client.company_name).like(like),
            )
        )
    return q.order_by(Dispatch.created_at.desc(), Dispatch.id.desc()).all()


def timeline_for(s: "Session", dispatch_id: int) -> list[DispatchTimelineEntry]:
    return (
        s.query(DispatchTimelineEntry)
        .filter(DispatchTimelineEntry.dispatch_id == dispatch_id)
        .order_by(DispatchTimelineEntry.created_at.desc(), DispatchTimelineEntry.id.desc())
        .all()
    )


def create_dispatch(s: "Session", payload: dict, user: "User") -> Dispatch:
    """Create a dispatch and tell the client's portal user about it."""
    now = datetime.utcnow()
    dispatch = Dispatch(
        client_id=int(payload["client_id"]),
        dispatch_number=clean_str(payload.get("dispatch_number")) or "",
        bl_number=clean_str(payload.get("bl_number")),
        supplier=clean_str(payload.get("supplier")),
        shipping_line=clean_str(payload.get("shipping_line")),
        arrival_date=parse_date(payload.get("arrival_date")),
        channel=clean_str(payload.get("channel")) or DEFAULT_CHANNEL,
        status=clean_str(payload.get("status")) or DEFAULT_DISPATCH_STATUS,
        container_number=clean_str(payload.get("container_number")),
        port=clean_str(payload.get("port")),
        weight=parse_number(payload.get("weight"), "weight"),
        value=parse_number(payload.get("value"), "value"),
        created_by=user.id,
        created_at=now,
        updated_at=now,
    )
    s.add(dispatch)
    s.flush()

    record_event(
        s,
        actor=user,
        action="dispatch.create",
        entity_type="Dispatch",
        entity_id=str(dispatch.id),
        metadata={"dispatch_number": dispatch.dispatch_number, "client_id": dispatch.client_id},
    )
    notify_client_of_dispatch(
        s,
        dispatch,
        type="dispatch_created",
        title="Nuevo Despacho Creado",
        message=f"Se ha creado un nuevo despacho {dispatch.dispatch_number} para tu empresa",
        link_dispatch=False,
    )
    return dispatch


def update_dispatch(s: "Session", dispatch: Dispatch, payload: dict, user: "User") -> Dispatch:
    """Update editable dispatch fields present in the payload."""
    changes = {}
    for field in EDITABLE_FIELDS:
        if field not in payload:
            continue
        new = _coerce(field, payload.get(field))
        if field in ("dispatch_number", "status") and not new:
            continue
        old = getattr(dispatch, field)
        if new != old:
            changes[field] = {"old": old, "new": new}
            setattr(dispatch, field, new)

    dispatch.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="dispatch.edit",
        entity_type="Dispatch",
        entity_id=str(dispatch.id),
        metadata={"dispatch_number": dispatch.dispatch_number, "changes": changes},
    )
    notify_client_of_dispatch(
        s,
        dispatch,
        type="dispatch_updated",
        title="Despacho Actualizado",
        message=f"El despacho {dispatch.dispatch_number} ha sido actualizado",
    )
    return dispatch


def update_status(
    s: "Session",
    dispatch: Dispatch,
    new_status: str,
    user: "User",
    notes: str | None = None,
) -> DispatchTimelineEntry:
    """
    Append a timeline entry, move the dispatch to `new_status` and notify the client.
    Any non-empty status string is accepted.
    """
    status = (new_status or "").strip()
    if not status:
        raise ValueError("status is required.")

    old_status = dispatch.status
    entry = DispatchTimelineEntry(
        dispatch_id=dispatch.id,
        status=status,
        notes=clean_str(notes),
        updated_by=user.id,
        created_at=datetime.utcnow(),
    )
    s.add(entry)
    dispatch.status = status
    dispatch.updated_at = datetime.utcnow()
    s.flush()

    record_event(
        s,
        actor=user,
        action="dispatch.status_update",
        entity_type="Dispatch",
        entity_id=str(dispatch.id),
        metadata={"old": old_status, "new": status},
    )
    notify_client_of_dispatch(
        s,
        dispatch,
        type="status_updated",
        title="Estado Actualizado",
        message=f"El estado del despacho {dispatch.dispatch_number} cambió a {status}",
    )
    return entry
