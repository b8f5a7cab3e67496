from app.customs.db import session_scope
from app.customs.modules.notifications.service import INBOX_LIMIT, notify_user
from conftest import create_dispatch


def test_inbox_requires_login(client):
    assert client.get("/notifications/").status_code == 401


def test_inbox_lists_newest_first_with_unread_count(client, admin_headers, acme, acme_headers):
    d = create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="N-1")
    client.post(f"/admin/dispatches/{d['id']}/status", json={"status": "in_transit"}, headers=admin_headers)

    r = client.get("/notifications/", headers=acme_headers)
    assert r.status_code == 200
    assert [n["type"] for n in r.json["data"]] == ["status_updated", "dispatch_created"]
    assert r.json["unread_count"] == 2


def test_inbox_is_capped(client, app, acme, acme_headers):
    with session_scope(app) as s:
        for i in range(INBOX_LIMIT + 5):
            notify_user(s, user_id=acme["user_id"], type="dispatch_updated", title=f"t{i}", message="m")

    r = client.get("/notifications/", headers=acme_headers)
    assert len(r.json["data"]) == INBOX_LIMIT
    assert r.json["unread_count"] == INBOX_LIMIT + 5


def test_mark_read_and_mark_all(client, admin_headers, acme, acme_headers):
    create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="N-2")
    create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="N-3")

    items = client.get("/notifications/", headers=acme_headers).json["data"]
    r = client.post(f"/notifications/{items[0]['id']}/read", headers=acme_headers)
    assert r.status_code == 200
    assert r.json["data"]["read"] is True
    assert client.get("/notifications/", headers=acme_headers).json["unread_count"] == 1

    r = client.post("/notifications/read-all", headers=acme_headers)
    assert r.json["data"] == {"updated": 1}
    assert client.get("/notifications/", headers=acme_headers).json["unread_count"] == 0


def test_cannot_mark_someone_elses(client, admin_headers, acme):
    create_dispatch(client, admin_headers, acme["client_id"])
    # admin's token: the notification belongs to the client user
    with session_scope(client.application) as s:
        from app.customs.modules.notifications.models import Notification

        nid = s.query(Notification.id).filter(Notification.user_id == acme["user_id"]).scalar()
    r = client.post(f"/notifications/{nid}/read", headers=admin_headers)
    assert r.status_code == 404
