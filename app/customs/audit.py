import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.customs.models import AuditEvent, User


def _request_context() -> tuple[str | None, str | None]:
    """(request_id, client ip) of the current request; (None, None) in scripts."""
    if not has_request_context():
        return None, None
    return getattr(g, "request_id", None), request.remote_addr


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Add an append-only audit row to the caller's session. The caller commits,
    so the event lands in the same transaction as the change it describes.
    Dates and other non-JSON values in `metadata` are stored as strings.
    """
    rid, ip = _request_context()
    ev = AuditEvent(
        request_id=request_id or rid,
        client_ip=ip,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
    )
    s.add(ev)
    return ev
