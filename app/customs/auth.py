from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, request, session
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.customs.api import fail, ok, request_payload
from app.customs.audit import record_event
from app.customs.db import db_session
from app.customs.models import User
from app.customs.rbac import user_role_keys
from app.customs.security import bearer_token, ensure_csrf_token

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds
_TOKEN_SALT = "customs-access-token"
_RESET_SALT = "customs-password-reset"
MIN_PASSWORD_LENGTH = 6


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_TOKEN_SALT)


def issue_access_token(user: User) -> str:
    return _serializer().dumps({"uid": user.id})


def user_id_from_token(token: str) -> int | None:
    """Return the user id carried by a valid, unexpired token."""
    max_age = int(current_app.config.get("ACCESS_TOKEN_MAX_AGE") or 0) or None
    try:
        data = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("Expired access token (request_id=%s)", getattr(g, "request_id", None))
        return None
    except BadSignature:
        return None
    uid = data.get("uid") if isinstance(data, dict) else None
    return uid if isinstance(uid, int) else None


def _reset_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_RESET_SALT)


def _password_fingerprint(user: User) -> str:
    # Changes with every new password, so a reset token works once.
    return user.password_hash[-16:]


def issue_password_reset_token(user: User) -> str:
    return _reset_serializer().dumps({"uid": user.id, "fp": _password_fingerprint(user)})


def user_for_reset_token(s: Session, token: str) -> User | None:
    """The active user a reset token was issued for, or None if it is invalid, expired or used."""
    max_age = int(current_app.config.get("PASSWORD_RESET_MAX_AGE") or 3600)
    try:
        data = _reset_serializer().loads(token, max_age=max_age)
    except BadSignature:  # SignatureExpired included
        return None
    if not isinstance(data, dict) or not isinstance(data.get("uid"), int):
        return None
    user = s.get(User, data["uid"])
    if not user or not user.is_active or data.get("fp") != _password_fingerprint(user):
        return None
    return user


def validate_new_password(password: str) -> str | None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return f"password must be at least {MIN_PASSWORD_LENGTH} characters."
    return None


def load_current_user() -> None:
    """
    Loads g.current_user from a bearer token, falling back to the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.auth_via_token = False
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    token = bearer_token(request)
    user_id: int | None
    if token:
        user_id = user_id_from_token(token)
        g.auth_via_token = user_id is not None
    else:
        raw = session.get("user_id")
        user_id = int(raw) if raw else None

    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
        if not user or not user.is_active:
            if not token:
                session.pop("user_id", None)
            g.current_user = None
            return
        g.current_user = user
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None


def _profile_payload(user: User) -> dict:
    profile = user.profile.to_dict() if user.profile else None
    return {
        "user_id": user.id,
        "email": user.email,
        "roles": sorted(user_role_keys(user)),
        "profile": profile,
    }


@bp.post("/login")
def login_post():
    payload = request_payload(request)
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return fail("Too many login attempts. Please wait 5 minutes.", 429)

    _record_attempt(ip)

    try:
        s = db_session()
        user = s.query(User).filter(User.email == email).one_or_none()
        if not user or not user.is_active or not check_password_hash(user.password_hash, password):
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=email,
                reason="Invalid credentials",
                metadata={"email": email},
            )
            s.commit()
            return fail("Invalid credentials.", 401)

        session["user_id"] = user.id
        _login_attempts[ip].clear()
        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        s.commit()
        data = _profile_payload(user)
        data["access_token"] = issue_access_token(user)
        data["csrf_token"] = ensure_csrf_token()
        return ok(data)
    except Exception:
        current_app.logger.exception("Login POST crashed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        raise


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    return ok(None)


@bp.get("/me")
def me():
    user = getattr(g, "current_user", None)
    if not user:
        return fail("Not authenticated.", 401)
    data = _profile_payload(user)
    data["csrf_token"] = ensure_csrf_token()
    return ok(data)


@bp.post("/password-reset/confirm")
def password_reset_confirm():
    """Set a new password with a reset token handed out by an administrator."""
    payload = request_payload(request)
    s = db_session()
    user = user_for_reset_token(s, (payload.get("token") or "").strip())
    if not user:
        return fail("Invalid or expired reset token.", 400)

    password = payload.get("password") or ""
    error = validate_new_password(password)
    if error:
        return fail(error, 400)

    user.password_hash = generate_password_hash(password)
    record_event(s, actor=user, action="auth.password_reset", entity_type="User", entity_id=str(user.id))
    s.commit()
    _login_attempts.pop(request.remote_addr or "unknown", None)
    return ok({"email": user.email})
