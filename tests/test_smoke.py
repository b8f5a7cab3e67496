from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, bearer


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_plain(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_login_and_admin_access(client):
    # Anonymous gets a JSON 401
    r = client.get("/admin/")
    assert r.status_code == 401
    assert r.json["success"] is False

    r = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200
    data = r.json["data"]
    assert data["roles"] == ["admin"]
    assert data["profile"]["role"] == "admin"
    assert data["access_token"]

    # Session cookie now works
    r = client.get("/admin/")
    assert r.status_code == 200
    assert r.json["success"] is True


def test_login_bad_password(client):
    r = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials."


def test_login_rate_limited(client):
    for _ in range(5):
        client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    r = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 429


def test_bearer_token_auth(client, admin_headers):
    fresh = client.application.test_client()
    r = fresh.get("/auth/me", headers=admin_headers)
    assert r.status_code == 200
    assert r.json["data"]["email"] == ADMIN_EMAIL

    r = fresh.get("/auth/me", headers=bearer("not-a-token"))
    assert r.status_code == 401


def test_logout_clears_session(client):
    client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert client.get("/auth/me").status_code == 200
    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401


def test_session_writes_require_csrf(client):
    r = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    csrf = r.json["data"]["csrf_token"]

    r = client.post("/admin/calendar", json={"title": "Cita", "event_date": "2026-03-01"})
    assert r.status_code == 400
    assert "CSRF" in r.json["error"]

    r = client.post(
        "/admin/calendar",
        json={"title": "Cita", "event_date": "2026-03-01"},
        headers={"X-CSRF-Token": csrf},
    )
    assert r.status_code == 201


def test_dashboard_stats(client, admin_headers, acme):
    from conftest import create_dispatch

    create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="D-1")
    create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="D-2", status="completed")
    create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="D-3", status="in_transit")

    r = client.get("/admin/", headers=admin_headers)
    assert r.status_code == 200
    data = r.json["data"]
    assert data["total_dispatches"] == 3
    assert data["active_dispatches"] == 2
    assert data["total_clients"] == 1
    assert data["pending_payments"] == 0
    counts = {row["status"]: row["count"] for row in data["dispatches_by_status"]}
    assert counts["pending"] == 1
    assert counts["completed"] == 1
    assert counts["in_transit"] == 1
    assert counts["customs"] == 0


def test_admin_me_lists_permissions(client, admin_headers):
    r = client.get("/admin/me", headers=admin_headers)
    assert r.status_code == 200
    perms = r.json["data"]["permissions"]
    assert "dispatches.edit" in perms
    assert "portal.view" not in perms
    assert r.json["data"]["roles"] == ["admin"]


def test_client_user_cannot_reach_admin(client, acme_headers):
    r = client.get("/admin/dispatches", headers=acme_headers)
    assert r.status_code == 403
    assert r.json["missing_permission"] == "dispatches.view"
