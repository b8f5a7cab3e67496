"""Tests for dispatch payments."""
from conftest import create_dispatch


def test_add_payment_and_summary(client, admin_headers, acme, acme_headers):
    d = create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="PAY-1")

    r = client.post(
        f"/admin/dispatches/{d['id']}/payments",
        json={"amount": "1200.50", "payment_type": "customs_duties", "due_date": "2026-03-10"},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.json
    p = r.json["data"]
    assert p["status"] == "pending"
    assert p["payment_type_label"] == "Derechos Aduaneros"
    assert p["due_date"] == "2026-03-10"

    r = client.post(
        f"/admin/dispatches/{d['id']}/payments",
        json={"amount": 300, "payment_type": "storage_fees", "status": "paid", "paid_date": "2026-03-01"},
        headers=admin_headers,
    )
    assert r.json["data"]["paid_date"] == "2026-03-01"

    r = client.get(f"/admin/dispatches/{d['id']}/payments", headers=admin_headers)
    assert len(r.json["data"]) == 2
    assert r.json["summary"] == {"total": 1500.5, "paid": 300.0, "pending": 1200.5}

    r = client.get("/notifications/", headers=acme_headers)
    latest = r.json["data"][0]
    assert latest["type"] == "payment_added"
    assert latest["message"] == (
        "Se ha agregado un nuevo pago de $300.00 (Tarifas de Almacenamiento) al despacho PAY-1"
    )


def test_paid_date_dropped_for_pending(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = client.post(
        f"/admin/dispatches/{d['id']}/payments",
        json={"amount": 10, "payment_type": "other", "paid_date": "2026-01-01"},
        headers=admin_headers,
    )
    assert r.json["data"]["paid_date"] is None


def test_payment_validation(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    for amount in ("0", "-5", "abc", ""):
        r = client.post(
            f"/admin/dispatches/{d['id']}/payments",
            json={"amount": amount, "payment_type": "other"},
            headers=admin_headers,
        )
        assert r.status_code == 400, amount

    r = client.post(
        f"/admin/dispatches/{d['id']}/payments",
        json={"amount": 5, "payment_type": "other", "status": "refunded"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert "Invalid status" in r.json["error"]

    r = client.post(f"/admin/dispatches/{d['id']}/payments", json={"amount": 5}, headers=admin_headers)
    assert "payment_type is required." in r.json["error"]


def test_proof_document_must_belong_to_dispatch(client, admin_headers, acme):
    import io

    d1 = create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="A")
    d2 = create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="B")
    r = client.post(
        f"/admin/dispatches/{d1['id']}/documents",
        data={"file": (io.BytesIO(b"proof"), "voucher.pdf"), "document_type": "payment_proof"},
        content_type="multipart/form-data",
        headers=admin_headers,
    )
    doc_id = r.json["data"]["id"]

    r = client.post(
        f"/admin/dispatches/{d2['id']}/payments",
        json={"amount": 5, "payment_type": "other", "proof_document_id": doc_id},
        headers=admin_headers,
    )
    assert r.status_code == 400

    r = client.post(
        f"/admin/dispatches/{d1['id']}/payments",
        json={"amount": 5, "payment_type": "other", "proof_document_id": doc_id},
        headers=admin_headers,
    )
    assert r.status_code == 201
    assert r.json["data"]["proof_document_id"] == doc_id


def test_mark_paid_and_back(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = client.post(
        f"/admin/dispatches/{d['id']}/payments",
        json={"amount": 99.9, "payment_type": "handling_fees"},
        headers=admin_headers,
    )
    pid = r.json["data"]["id"]

    r = client.post(f"/admin/payments/{pid}/status", json={"status": "paid", "paid_date": "2026-04-02"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json["data"]["status"] == "paid"
    assert r.json["data"]["paid_date"] == "2026-04-02"

    r = client.get("/admin/", headers=admin_headers)
    assert r.json["data"]["pending_payments"] == 0

    r = client.post(f"/admin/payments/{pid}/status", json={"status": "pending"}, headers=admin_headers)
    assert r.json["data"]["paid_date"] is None

    r = client.post(f"/admin/payments/{pid}/status", json={"status": "void"}, headers=admin_headers)
    assert r.status_code == 400


def test_payment_types(client, admin_headers):
    r = client.get("/admin/payments/types", headers=admin_headers)
    assert {"value": "import_tax", "label": "Impuesto de Importación"} in r.json["data"]


def test_payment_amount_must_be_finite(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    for amount in ("nan", "inf", "-inf", "Infinity"):
        r = client.post(
            f"/admin/dispatches/{d['id']}/payments",
            json={"amount": amount, "payment_type": "other"},
            headers=admin_headers,
        )
        assert r.status_code == 400, amount
        assert "amount must be a number." in r.json["error"]

    r = client.get(f"/admin/dispatches/{d['id']}/payments", headers=admin_headers)
    assert r.json["data"] == []
