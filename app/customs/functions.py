"""
Server-side functions callable with a bearer token.

`create-client` provisions a client company together with its portal login.
Every response carries permissive CORS headers so a browser front end on
another origin can call it directly.
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from app.customs.constants import ROLE_ADMIN
from app.customs.db import db_session
from app.customs.modules.clients.service import provision_client

bp = Blueprint("functions", __name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}


class FunctionError(Exception):
    pass


def _respond(body: dict, status: int = 200):
    resp = jsonify(body)
    resp.status_code = status
    resp.headers.update(CORS_HEADERS)
    return resp


@bp.route("/create-client", methods=["POST", "OPTIONS"])
def create_client():
    if request.method == "OPTIONS":
        resp = current_app.response_class(status=200)
        resp.headers.update(CORS_HEADERS)
        return resp

    s = db_session()
    try:
        admin = getattr(g, "current_user", None)
        if admin is None or not getattr(g, "auth_via_token", False):
            raise FunctionError("No autorizado")

        profile = admin.profile
        if profile is None or profile.role != ROLE_ADMIN:
            raise FunctionError("Solo los administradores pueden crear clientes")

        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise FunctionError("El cuerpo de la solicitud debe ser un objeto JSON")

        client = provision_client(s, body, admin)
        s.commit()
    except Exception as e:
        s.rollback()
        current_app.logger.warning(
            "create-client failed: %s (request_id=%s)", e, getattr(g, "request_id", None)
        )
        return _respond({"success": False, "error": str(e)}, 400)

    return _respond(
        {
            "success": True,
            "data": client.to_dict(),
            "message": "Cliente creado exitosamente",
        }
    )
