from __future__ import annotations

from flask import Blueprint, abort, current_app, g, request

from app.customs.api import fail, ok, request_payload
from app.customs.audit import record_event
from app.customs.auth import issue_password_reset_token
from app.customs.db import db_session
from app.customs.models import User
from app.customs.modules.users.service import AccountError, create_account, list_accounts
from app.customs.rbac import require_permission, user_role_keys

bp = Blueprint("users", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _account_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "is_active": user.is_active,
        "roles": sorted(user_role_keys(user)),
        "profile": user.profile.to_dict() if user.profile else None,
    }


@bp.get("/users")
@require_permission("users.view")
def users_list():
    return ok([_account_dict(u) for u in list_accounts(db_session())])


@bp.post("/users")
@require_permission("users.manage")
def users_create():
    s = db_session()
    u = _current_user()
    try:
        user = create_account(s, request_payload(request), u)
        s.commit()
    except AccountError as e:
        s.rollback()
        return fail(str(e), 400)
    return ok(_account_dict(user), 201)


@bp.post("/users/<int:user_id>/password-reset")
@require_permission("users.manage")
def user_password_reset(user_id: int):
    """Hand out a one-time reset token; the user redeems it at /auth/password-reset/confirm."""
    s = db_session()
    user = s.get(User, user_id)
    if not user or not user.is_active:
        abort(404)
    token = issue_password_reset_token(user)
    record_event(
        s,
        actor=_current_user(),
        action="user.password_reset_issued",
        entity_type="User",
        entity_id=str(user.id),
    )
    s.commit()
    return ok(
        {
            "email": user.email,
            "reset_token": token,
            "expires_in": int(current_app.config.get("PASSWORD_RESET_MAX_AGE") or 3600),
        }
    )
