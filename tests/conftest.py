"""Shared fixtures: a fresh sqlite app per test, seeded with the admin/client roles."""
import pytest
from werkzeug.security import generate_password_hash

from app.customs import create_app
from app.customs.auth import _login_attempts
from app.customs.db import session_scope
from app.customs.models import Base, Profile, User
from app.customs.modules.clients.service import provision_client
from scripts.init_db import seed_roles

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "pw"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)
    _login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        roles = seed_roles(s)
        u = User(email=ADMIN_EMAIL, password_hash=generate_password_hash(ADMIN_PASSWORD), is_active=True)
        u.roles.append(roles["admin"])
        s.add(u)
        s.flush()
        s.add(Profile(user_id=u.id, email=ADMIN_EMAIL, full_name="Admin", role="admin"))

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, email, password):
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.json
    return r.json["data"]["access_token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(client):
    return bearer(login(client, ADMIN_EMAIL, ADMIN_PASSWORD))


def make_client_account(app, *, email="cliente@acme.pe", company_name="Acme SAC", ruc="20123456789", password="secret1"):
    """Provision a client company with a portal login. Returns (client_id, user_id)."""
    with session_scope(app) as s:
        admin = s.query(User).filter(User.email == ADMIN_EMAIL).one()
        c = provision_client(
            s,
            {
                "email": email,
                "password": password,
                "company_name": company_name,
                "ruc": ruc,
                "contact_person": "Rosa Quispe",
            },
            admin,
        )
        return c.id, c.user_id


@pytest.fixture()
def acme(app):
    client_id, user_id = make_client_account(app)
    return {"client_id": client_id, "user_id": user_id, "email": "cliente@acme.pe", "password": "secret1"}


@pytest.fixture()
def acme_headers(client, acme):
    return bearer(login(client, acme["email"], acme["password"]))


def create_dispatch(client, headers, client_id, **fields):
    payload = {"client_id": client_id, "dispatch_number": "DSP-001"}
    payload.update(fields)
    r = client.post("/admin/dispatches", json=payload, headers=headers)
    assert r.status_code == 201, r.json
    return r.json["data"]
