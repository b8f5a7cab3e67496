"""Tests for dispatches: CRUD, search, status timeline and client notifications."""
from app.customs.db import session_scope
from app.customs.modules.notifications.models import Notification
from conftest import create_dispatch, make_client_account


def _notifications(app, user_id):
    with session_scope(app) as s:
        rows = s.query(Notification).filter(Notification.user_id == user_id).order_by(Notification.id.asc()).all()
        return [(n.type, n.title, n.message, n.dispatch_id) for n in rows]


def test_dispatch_create_defaults_and_notifies(client, app, admin_headers, acme):
    d = create_dispatch(
        client,
        admin_headers,
        acme["client_id"],
        dispatch_number="IMP-2026-0042",
        bl_number="MSCU1234567",
        arrival_date="2026-02-14",
        weight="1250.5",
        value="48000",
    )
    assert d["status"] == "pending"
    assert d["status_label"] == "PENDIENTE"
    assert d["channel"] == "pending"
    assert d["arrival_date"] == "2026-02-14"
    assert d["weight"] == 1250.5
    assert d["client"]["company_name"] == "Acme SAC"

    notes = _notifications(app, acme["user_id"])
    assert notes == [
        (
            "dispatch_created",
            "Nuevo Despacho Creado",
            "Se ha creado un nuevo despacho IMP-2026-0042 para tu empresa",
            None,
        )
    ]


def test_dispatch_create_validation(client, admin_headers, acme):
    r = client.post("/admin/dispatches", json={"client_id": 999}, headers=admin_headers)
    assert r.status_code == 400
    assert "Client not found." in r.json["error"]
    assert "dispatch_number is required." in r.json["error"]

    r = client.post(
        "/admin/dispatches",
        json={"client_id": acme["client_id"], "dispatch_number": "X", "channel": "blue", "weight": "heavy"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert "Invalid channel" in r.json["error"]
    assert "weight must be a number." in r.json["error"]


def test_dispatch_rejects_non_finite_numbers(client, admin_headers, acme):
    for field, raw in (("weight", "nan"), ("value", "inf"), ("weight", "-Infinity")):
        r = client.post(
            "/admin/dispatches",
            json={"client_id": acme["client_id"], "dispatch_number": "NUM-1", field: raw},
            headers=admin_headers,
        )
        assert r.status_code == 400, (field, raw)
        assert f"{field} must be a number." in r.json["error"]

    r = client.get("/admin/dispatches", headers=admin_headers)
    assert r.json["data"] == []


def test_dispatch_rejects_date_with_trailing_text(client, admin_headers, acme):
    r = client.post(
        "/admin/dispatches",
        json={"client_id": acme["client_id"], "dispatch_number": "DT-1", "arrival_date": "2026-02-14xyz"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert "Invalid date" in r.json["error"]

    d = create_dispatch(client, admin_headers, acme["client_id"], arrival_date=" 2026-02-14 ")
    assert d["arrival_date"] == "2026-02-14"


def test_dispatch_without_portal_login_sends_nothing(client, app, admin_headers):
    from app.customs.modules.clients.models import Client

    with session_scope(app) as s:
        c = Client(company_name="Sin Portal SAC", ruc="20000000001", email="x@sinportal.pe")
        s.add(c)
        s.flush()
        client_id = c.id

    create_dispatch(client, admin_headers, client_id)
    with session_scope(app) as s:
        assert s.query(Notification).count() == 0


def test_dispatch_update(client, app, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = client.patch(
        f"/admin/dispatches/{d['id']}",
        json={"channel": "red", "port": "Callao", "dispatch_number": ""},
        headers=admin_headers,
    )
    assert r.status_code == 400  # blank dispatch number

    r = client.patch(
        f"/admin/dispatches/{d['id']}",
        json={"channel": "red", "port": "Callao"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json["data"]["channel_label"] == "ROJO"
    assert r.json["data"]["port"] == "Callao"

    kinds = [n[0] for n in _notifications(app, acme["user_id"])]
    assert kinds == ["dispatch_created", "dispatch_updated"]


def test_status_update_appends_timeline(client, app, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="DSP-9")

    r = client.post(
        f"/admin/dispatches/{d['id']}/status",
        json={"status": "customs", "notes": "DAM numerada"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json["data"]["dispatch"]["status"] == "customs"
    assert r.json["data"]["entry"]["notes"] == "DAM numerada"

    client.post(f"/admin/dispatches/{d['id']}/status", json={"status": "released"}, headers=admin_headers)

    r = client.get(f"/admin/dispatches/{d['id']}/timeline", headers=admin_headers)
    assert [e["status"] for e in r.json["data"]] == ["released", "customs"]

    last = _notifications(app, acme["user_id"])[-1]
    assert last == (
        "status_updated",
        "Estado Actualizado",
        "El estado del despacho DSP-9 cambió a released",
        d["id"],
    )


def test_status_update_accepts_unlisted_status(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = client.post(f"/admin/dispatches/{d['id']}/status", json={"status": "cleared"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json["data"]["dispatch"]["status_label"] == "CLEARED"


def test_status_update_requires_status(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = client.post(f"/admin/dispatches/{d['id']}/status", json={"status": "  "}, headers=admin_headers)
    assert r.status_code == 400


def test_dispatch_search_and_filter(client, app, admin_headers, acme):
    other_id, _ = make_client_account(app, email="ops@beta.pe", company_name="Beta Textiles", ruc="20333333333")
    create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="ACM-1", bl_number="HLCU999")
    create_dispatch(client, admin_headers, other_id, dispatch_number="BET-1")

    r = client.get("/admin/dispatches?q=hlcu", headers=admin_headers)
    assert [d["dispatch_number"] for d in r.json["data"]] == ["ACM-1"]

    r = client.get("/admin/dispatches?q=textiles", headers=admin_headers)
    assert [d["dispatch_number"] for d in r.json["data"]] == ["BET-1"]

    r = client.get(f"/admin/dispatches?client_id={other_id}", headers=admin_headers)
    assert [d["dispatch_number"] for d in r.json["data"]] == ["BET-1"]


def test_dispatch_detail_bundles_related(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    client.post(
        f"/admin/dispatches/{d['id']}/payments",
        json={"amount": "150", "payment_type": "service_fees"},
        headers=admin_headers,
    )
    r = client.get(f"/admin/dispatches/{d['id']}", headers=admin_headers)
    assert r.status_code == 200
    data = r.json["data"]
    assert data["documents"] == []
    assert data["timeline"] == []
    assert data["payment_summary"] == {"total": 150.0, "paid": 0.0, "pending": 150.0}


def test_dispatch_options(client, admin_headers):
    r = client.get("/admin/dispatches/options", headers=admin_headers)
    statuses = [s["value"] for s in r.json["data"]["statuses"]]
    assert statuses[0] == "pending"
    assert statuses[-1] == "completed"
    assert {"value": "green", "label": "VERDE"} in r.json["data"]["channels"]
