"""Tests for dispatch documents (local storage backend)."""
import io

from sqlalchemy.orm import Session

from app.customs.db import session_scope
from app.customs.modules.documents.models import DispatchDocument
from app.customs.modules.documents.service import build_storage_key, sanitize_filename
from conftest import create_dispatch


def _upload(client, headers, dispatch_id, *, name="factura comercial.pdf", body=b"%PDF-1.4 test", **form):
    data = {"file": (io.BytesIO(body), name)}
    data.update(form)
    return client.post(
        f"/admin/dispatches/{dispatch_id}/documents",
        data=data,
        content_type="multipart/form-data",
        headers=headers,
    )


def test_sanitize_filename():
    assert sanitize_filename("factura comercial (1).pdf") == "factura_comercial__1_.pdf"
    assert sanitize_filename("C:\\docs\\bl.pdf") == "bl.pdf"
    assert sanitize_filename("") == "document.bin"


def test_build_storage_key():
    assert build_storage_key(7, "lista empaque.xlsx", now_ms=1700000000000) == (
        "dispatches/7/1700000000000_lista_empaque.xlsx"
    )


def test_upload_and_download(client, app, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="DOC-1")
    r = _upload(client, admin_headers, d["id"], document_type="invoice", notes="Original")
    assert r.status_code == 201, r.json
    doc = r.json["data"]
    assert doc["document_type_label"] == "Factura"
    assert doc["file_name"] == "factura comercial.pdf"
    assert doc["file_size"] == len(b"%PDF-1.4 test")
    assert doc["version"] == 1

    r = client.get(f"/admin/documents/{doc['id']}/download", headers=admin_headers)
    assert r.status_code == 200
    assert r.data == b"%PDF-1.4 test"
    assert "attachment" in r.headers["Content-Disposition"]

    r = client.get("/notifications/", headers=admin_headers)
    assert r.json["data"] == []  # admins get no dispatch notifications


def test_upload_notifies_client(client, admin_headers, acme, acme_headers):
    d = create_dispatch(client, admin_headers, acme["client_id"], dispatch_number="DOC-2")
    assert _upload(client, admin_headers, d["id"], document_type="bl").status_code == 201

    r = client.get("/notifications/", headers=acme_headers)
    latest = r.json["data"][0]
    assert latest["type"] == "document_uploaded"
    assert latest["message"] == "Se ha subido un nuevo documento (Conocimiento de Embarque) para el despacho DOC-2"


def test_versions_count_per_type(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    _upload(client, admin_headers, d["id"], document_type="invoice")
    _upload(client, admin_headers, d["id"], document_type="packing_list", name="packing.pdf")
    r = _upload(client, admin_headers, d["id"], document_type="invoice", name="factura_v2.pdf")
    assert r.json["data"]["version"] == 2

    r = client.get(f"/admin/dispatches/{d['id']}/documents", headers=admin_headers)
    assert len(r.json["data"]) == 3


def test_upload_defaults_to_invoice(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = _upload(client, admin_headers, d["id"])
    assert r.json["data"]["document_type"] == "invoice"


def test_upload_rejects_unknown_type(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = _upload(client, admin_headers, d["id"], document_type="selfie")
    assert r.status_code == 400
    assert "Invalid document_type" in r.json["error"]


def test_upload_rejects_oversized_file(client, app, admin_headers, acme):
    app.config["MAX_UPLOAD_BYTES"] = 1024
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = _upload(client, admin_headers, d["id"], body=b"x" * 2048)
    assert r.status_code == 400
    assert "File too large" in r.json["error"]

    r = client.get(f"/admin/dispatches/{d['id']}/documents", headers=admin_headers)
    assert r.json["data"] == []


def test_upload_requires_file(client, admin_headers, acme):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = client.post(
        f"/admin/dispatches/{d['id']}/documents",
        data={"document_type": "invoice"},
        content_type="multipart/form-data",
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_document_types(client, admin_headers):
    r = client.get("/admin/documents/types", headers=admin_headers)
    values = [t["value"] for t in r.json["data"]]
    assert values[0] == "invoice"
    assert "customs_declaration" in values


def test_client_cannot_upload(client, admin_headers, acme, acme_headers):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    r = _upload(client, acme_headers, d["id"])
    assert r.status_code == 403


def _stored_files(tmp_path):
    return [p for p in (tmp_path / "storage").rglob("*") if p.is_file()]


def test_failed_commit_removes_stored_file(client, app, admin_headers, acme, tmp_path, monkeypatch):
    d = create_dispatch(client, admin_headers, acme["client_id"])

    def broken_commit(self):
        raise RuntimeError("database went away")

    with monkeypatch.context() as m:
        m.setattr(Session, "commit", broken_commit)
        r = _upload(client, admin_headers, d["id"])

    assert r.status_code == 500
    assert _stored_files(tmp_path) == []
    with session_scope(app) as s:
        assert s.query(DispatchDocument).count() == 0


def test_failed_insert_removes_stored_file(client, app, admin_headers, acme, tmp_path, monkeypatch):
    d = create_dispatch(client, admin_headers, acme["client_id"])
    real_flush = Session.flush

    def flush_rejecting_documents(self, objects=None):
        if any(isinstance(o, DispatchDocument) for o in self.new):
            raise RuntimeError("insert rejected")
        return real_flush(self, objects)

    with monkeypatch.context() as m:
        m.setattr(Session, "flush", flush_rejecting_documents)
        r = _upload(client, admin_headers, d["id"])

    assert r.status_code == 500
    assert _stored_files(tmp_path) == []
    r = client.get(f"/admin/dispatches/{d['id']}/documents", headers=admin_headers)
    assert r.json["data"] == []
