from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func
from werkzeug.security import generate_password_hash

from app.customs.api import clean_str
from app.customs.audit import record_event
from app.customs.auth import validate_new_password
from app.customs.constants import ROLES
from app.customs.models import Profile, Role, User

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class AccountError(ValueError):
    pass


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_account_payload(payload: dict) -> list[str]:
    errors = []
    email = (clean_str(payload.get("email")) or "").lower()
    if not email:
        errors.append("email is required.")
    elif not _EMAIL_RE.match(email):
        errors.append("email is not a valid address.")
    password_error = validate_new_password(payload.get("password") or "")
    if password_error:
        errors.append(password_error)
    if not clean_str(payload.get("full_name")):
        errors.append("full_name is required.")
    role = clean_str(payload.get("role"))
    if role not in ROLES:
        errors.append(f"Invalid role. Must be one of: {', '.join(ROLES)}")
    return errors


def list_accounts(s: "Session") -> list[User]:
    return s.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def create_account(s: "Session", payload: dict, admin: User) -> User:
    """
    Create a login plus its profile with the given role. Nothing is committed
    here; the caller commits or rolls back both rows together.
    """
    errors = validate_account_payload(payload)
    if errors:
        raise AccountError(" ".join(errors))

    email = (clean_str(payload.get("email")) or "").lower()
    if s.query(User).filter(func.lower(User.email) == email).one_or_none():
        raise AccountError("A user with this email address has already been registered.")

    role_key = clean_str(payload.get("role")) or ""
    role = s.query(Role).filter(Role.key == role_key).one_or_none()
    if not role:
        raise AccountError(f"Role {role_key!r} is not configured. Run scripts/init_db.py.")

    user = User(email=email, password_hash=generate_password_hash(payload["password"]), is_active=True)
    user.roles.append(role)
    s.add(user)
    s.flush()

    now = datetime.utcnow()
    s.add(
        Profile(
            user_id=user.id,
            email=email,
            full_name=clean_str(payload.get("full_name")) or "",
            role=role_key,
            phone=clean_str(payload.get("phone")),
            created_at=now,
            updated_at=now,
        )
    )
    s.flush()

    record_event(
        s,
        actor=admin,
        action="user.create",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": email, "role": role_key},
    )
    return user
