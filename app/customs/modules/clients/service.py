from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, or_
from werkzeug.security import generate_password_hash

from app.customs.api import clean_str
from app.customs.audit import record_event
from app.customs.constants import ROLE_CLIENT
from app.customs.models import Profile, Role, User
from app.customs.modules.clients.models import Client

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class ProvisioningError(ValueError):
    pass


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Fields an admin may change after creation. Email/password belong to the login.
EDITABLE_FIELDS = ("company_name", "ruc", "phone", "address", "contact_person", "notes")


def validate_client_payload(payload: dict, *, creating: bool) -> list[str]:
    """Validate client creation/update payload. Returns list of errors."""
    errors = []
    if creating or "company_name" in payload:
        if not clean_str(payload.get("company_name")):
            errors.append("company_name is required.")
    if creating or "ruc" in payload:
        if not clean_str(payload.get("ruc")):
            errors.append("ruc is required.")
    if creating:
        email = (clean_str(payload.get("email")) or "").lower()
        if not email:
            errors.append("email is required.")
        elif not _EMAIL_RE.match(email):
            errors.append("email is not a valid address.")
        if not (payload.get("password") or ""):
            errors.append("password is required.")
    return errors


def list_clients(s: "Session", search: str | None = None) -> list[Client]:
    q = s.query(Client)
    term = (search or "").strip()
    if term:
        like = f"%{term.lower()}%"
        q = q.filter(
            or_(
                func.lower(Client.company_name).like(like),
                Client.ruc.contains(term),
                func.lower(Client.email).like(like),
            )
        )
    return q.order_by(Client.created_at.desc(), Client.id.desc()).all()


def client_for_user(s: "Session", user_id: int) -> Client | None:
    return s.query(Client).filter(Client.user_id == user_id).first()


def update_client(s: "Session", client: Client, payload: dict, user: User) -> Client:
    """Update an existing client. Only EDITABLE_FIELDS are touched."""
    changes = {}
    for field in EDITABLE_FIELDS:
        if field not in payload:
            continue
        new = clean_str(payload.get(field))
        if field in ("company_name", "ruc") and not new:
            continue
        old = getattr(client, field)
        if new != old:
            changes[field] = {"old": old, "new": new}
            setattr(client, field, new)

    client.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="client.edit",
        entity_type="Client",
        entity_id=str(client.id),
        metadata={"company_name": client.company_name, "changes": changes},
    )
    return client


def provision_client(s: "Session", payload: dict, admin: User) -> Client:
    """
    Create a client's portal account: login user, profile, then the client row.

    All three rows are written through the caller's session; nothing is
    committed here, so a failure at any step leaves no partial account once the
    caller rolls back.
    """
    errors = validate_client_payload(payload, creating=True)
    if errors:
        raise ProvisioningError(" ".join(errors))

    email = (clean_str(payload.get("email")) or "").lower()
    company_name = clean_str(payload.get("company_name")) or ""
    contact_person = clean_str(payload.get("contact_person"))

    if s.query(User).filter(func.lower(User.email) == email).one_or_none():
        raise ProvisioningError("A user with this email address has already been registered.")

    role = s.query(Role).filter(Role.key == ROLE_CLIENT).one_or_none()
    if not role:
        raise ProvisioningError("Client role is not configured. Run scripts/init_db.py.")

    # 1. login user
    user = User(
        email=email,
        password_hash=generate_password_hash(payload["password"]),
        is_active=True,
    )
    user.roles.append(role)
    s.add(user)
    s.flush()

    # 2. profile
    now = datetime.utcnow()
    profile = Profile(
        user_id=user.id,
        email=email,
        full_name=contact_person or company_name,
        role=ROLE_CLIENT,
        phone=clean_str(payload.get("phone")),
        company_name=company_name,
        ruc=clean_str(payload.get("ruc")),
        address=clean_str(payload.get("address")),
        created_at=now,
        updated_at=now,
    )
    s.add(profile)
    s.flush()

    # 3. client row
    client = Client(
        user_id=user.id,
        company_name=company_name,
        ruc=clean_str(payload.get("ruc")) or "",
        email=email,
        phone=clean_str(payload.get("phone")),
        address=clean_str(payload.get("address")),
        contact_person=contact_person,
        notes=clean_str(payload.get("notes")),
        created_by=admin.id,
        created_at=now,
        updated_at=now,
    )
    s.add(client)
    s.flush()

    record_event(
        s,
        actor=admin,
        action="client.create",
        entity_type="Client",
        entity_id=str(client.id),
        metadata={"company_name": client.company_name, "ruc": client.ruc, "user_id": user.id},
    )
    return client
