from __future__ import annotations

from flask import Blueprint, abort, current_app, g, request

from app.customs.api import fail, ok, request_payload
from app.customs.db import db_session
from app.customs.models import User
from app.customs.modules.clients.models import Client
from app.customs.modules.clients.service import (
    ProvisioningError,
    list_clients,
    provision_client,
    update_client,
    validate_client_payload,
)
from app.customs.rbac import require_permission

bp = Blueprint("clients", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


# ---------- List ----------
@bp.get("/clients")
@require_permission("clients.view")
def clients_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    clients = list_clients(s, search)
    return ok([c.to_dict() for c in clients])


# ---------- New (provisions the portal login too) ----------
@bp.post("/clients")
@require_permission("clients.create")
def clients_create():
    s = db_session()
    u = _current_user()
    payload = request_payload(request)
    try:
        client = provision_client(s, payload, u)
        s.commit()
    except ProvisioningError as e:
        s.rollback()
        return fail(str(e), 400)
    current_app.logger.info("Client %s provisioned by user %s", client.id, u.id)
    return ok(client.to_dict(), 201)


# ---------- Detail ----------
@bp.get("/clients/<int:client_id>")
@require_permission("clients.view")
def client_detail(client_id: int):
    s = db_session()
    client = s.get(Client, client_id)
    if not client:
        abort(404)
    return ok(client.to_dict())


# ---------- Edit ----------
@bp.route("/clients/<int:client_id>", methods=["PATCH", "PUT", "POST"])
@require_permission("clients.edit")
def client_update(client_id: int):
    s = db_session()
    u = _current_user()
    client = s.get(Client, client_id)
    if not client:
        abort(404)

    payload = request_payload(request)
    errors = validate_client_payload(payload, creating=False)
    if errors:
        return fail(" ".join(errors), 400)

    update_client(s, client, payload, u)
    s.commit()
    return ok(client.to_dict())
