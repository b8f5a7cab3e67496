"""Tests for the clients module (admin side)."""
from app.customs.db import session_scope
from app.customs.models import AuditEvent, Profile, User
from app.customs.modules.clients.models import Client
from conftest import make_client_account


def test_clients_list_requires_auth(client):
    r = client.get("/admin/clients")
    assert r.status_code == 401


def test_client_create_provisions_login(client, app, admin_headers):
    r = client.post(
        "/admin/clients",
        json={
            "email": "Ventas@Andes.pe",
            "password": "secret1",
            "company_name": "Andes Import SAC",
            "ruc": "20555555551",
            "phone": "+51 1 555 0101",
            "contact_person": "Luis Paredes",
        },
        headers=admin_headers,
    )
    assert r.status_code == 201, r.json
    data = r.json["data"]
    assert data["email"] == "ventas@andes.pe"
    assert data["user_id"]

    with session_scope(app) as s:
        user = s.query(User).filter(User.email == "ventas@andes.pe").one()
        assert [role.key for role in user.roles] == ["client"]
        profile = s.query(Profile).filter(Profile.user_id == user.id).one()
        assert profile.role == "client"
        assert profile.full_name == "Luis Paredes"
        assert profile.company_name == "Andes Import SAC"
        assert s.query(AuditEvent).filter(AuditEvent.action == "client.create").count() == 1

    # The new client can log in to the portal
    r = client.post("/auth/login", json={"email": "ventas@andes.pe", "password": "secret1"})
    assert r.status_code == 200


def test_client_create_validation(client, admin_headers):
    r = client.post("/admin/clients", json={"company_name": "Sin RUC"}, headers=admin_headers)
    assert r.status_code == 400
    assert "ruc is required." in r.json["error"]
    assert "email is required." in r.json["error"]


def test_client_create_duplicate_email_leaves_nothing_behind(client, app, admin_headers, acme):
    r = client.post(
        "/admin/clients",
        json={"email": acme["email"], "password": "x", "company_name": "Otra", "ruc": "20999999999"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    with session_scope(app) as s:
        assert s.query(Client).count() == 1
        assert s.query(User).filter(User.email == acme["email"]).count() == 1


def test_clients_search(client, app, admin_headers):
    make_client_account(app, email="a@uno.pe", company_name="Uno Trading", ruc="20111111111")
    make_client_account(app, email="b@dos.pe", company_name="Dos Logistics", ruc="20222222222")

    r = client.get("/admin/clients?q=trading", headers=admin_headers)
    assert [c["company_name"] for c in r.json["data"]] == ["Uno Trading"]

    r = client.get("/admin/clients?q=2022222", headers=admin_headers)
    assert [c["company_name"] for c in r.json["data"]] == ["Dos Logistics"]

    r = client.get("/admin/clients?q=b@dos", headers=admin_headers)
    assert [c["email"] for c in r.json["data"]] == ["b@dos.pe"]

    r = client.get("/admin/clients", headers=admin_headers)
    assert len(r.json["data"]) == 2


def test_client_update(client, admin_headers, acme):
    r = client.patch(
        f"/admin/clients/{acme['client_id']}",
        json={"phone": "999 888 777", "notes": "Cliente preferente", "email": "ignored@x.pe"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    data = r.json["data"]
    assert data["phone"] == "999 888 777"
    assert data["notes"] == "Cliente preferente"
    assert data["email"] == acme["email"]


def test_client_update_rejects_blank_company(client, admin_headers, acme):
    r = client.patch(f"/admin/clients/{acme['client_id']}", json={"company_name": "  "}, headers=admin_headers)
    assert r.status_code == 400


def test_client_detail_404(client, admin_headers):
    r = client.get("/admin/clients/9999", headers=admin_headers)
    assert r.status_code == 404
    assert r.json["success"] is False
