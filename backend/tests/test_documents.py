import io
import os

import pytest

from invdocs.models import ActivityLog, Document
from invdocs.services import document_service
from invdocs.services.blob_store import FileSystemBlobStore, get_blob_store
from invdocs.validation import NotFoundError, StoreUnavailableError


def _upload(client, data=b"hello world", name="notes.txt", content_type="text/plain", headers=None):
    all_headers = {"X-File-Name": name, "X-Username": "alice"}
    all_headers.update(headers or {})
    return client.post("/api/documents", data=data, content_type=content_type, headers=all_headers)


def test_raw_upload_then_download(client, db_session):
    resp = _upload(client)
    assert resp.status_code == 201
    doc = resp.get_json()["document"]
    assert doc["name"] == "notes.txt"
    assert doc["size_bytes"] == 11

    resp = client.get(f"/api/documents/download/{doc['id']}")
    assert resp.status_code == 200
    assert resp.data == b"hello world"
    assert resp.mimetype == "text/plain"
    assert "notes.txt" in resp.headers["Content-Disposition"]


def test_multipart_upload(client, db_session):
    resp = client.post(
        "/api/documents",
        data={"file": (io.BytesIO(b"%PDF-1.4 test"), "scan.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    assert resp.get_json()["document"]["content_type"] == "application/pdf"


def test_url_encoded_file_name_is_decoded(client, db_session):
    resp = _upload(client, name="Quarterly%20Report.txt")
    assert resp.get_json()["document"]["name"] == "Quarterly Report.txt"


def test_empty_upload_rejected(client, db_session):
    assert _upload(client, data=b"").status_code == 400
    assert _upload(client, name="").status_code == 400


def test_listing_is_newest_first_without_content(client, db_session):
    first = _upload(client, name="a.txt").get_json()["document"]
    second = _upload(client, name="b.txt").get_json()["document"]

    body = client.get("/api/documents").get_json()
    ids = [d["id"] for d in body["items"]]
    assert ids.index(second["id"]) < ids.index(first["id"])
    assert all("content" not in d for d in body["items"])

    meta = client.get(f"/api/documents/{first['id']}").get_json()["document"]
    assert meta["name"] == "a.txt"


def test_missing_document_is_404(client, db_session):
    assert client.get("/api/documents/9999").status_code == 404
    assert client.get("/api/documents/download/9999").status_code == 404
    assert client.delete("/api/documents/9999").status_code == 404


def test_delete_removes_blob_and_metadata(client, db_session):
    doc = _upload(client).get_json()["document"]
    locator = db_session.get(Document, doc["id"]).filename
    blobs = get_blob_store()
    assert os.path.isfile(os.path.join(blobs.root, locator))

    resp = client.delete(f"/api/documents/{doc['id']}", headers={"X-Username": "alice"})
    assert resp.status_code == 204
    assert not os.path.exists(os.path.join(blobs.root, locator))
    assert db_session.get(Document, doc["id"]) is None

    latest = db_session.query(ActivityLog).order_by(ActivityLog.id.desc()).first()
    assert latest.action == "Deleted document: notes.txt"


def test_delete_with_missing_blob_succeeds(client, db_session):
    doc = _upload(client).get_json()["document"]
    locator = db_session.get(Document, doc["id"]).filename
    os.remove(os.path.join(get_blob_store().root, locator))

    resp = client.get(f"/api/documents/download/{doc['id']}")
    assert resp.status_code == 404

    resp = client.delete(f"/api/documents/{doc['id']}")
    assert resp.status_code == 204
    assert db_session.get(Document, doc["id"]) is None


def test_delete_metadata_without_blob_locator(db_session):
    doc = Document(name="orphan.txt", filename=None, content_type="text/plain", size_bytes=0)
    db_session.add(doc)
    db_session.commit()

    document_service.delete_document(document_id=doc.id, user="alice")
    assert db_session.query(Document).count() == 0


def test_blob_delete_failure_keeps_metadata(db_session, monkeypatch):
    doc = document_service.store_document(data=b"abc", name="keep.txt", content_type="text/plain")

    def failing_delete(self, locator):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(FileSystemBlobStore, "delete", failing_delete)

    with pytest.raises(StoreUnavailableError):
        document_service.delete_document(document_id=doc.id)

    assert db_session.get(Document, doc.id) is not None


def test_blob_delete_failure_returns_500(client, db_session, monkeypatch):
    doc = _upload(client).get_json()["document"]

    def failing_delete(self, locator):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(FileSystemBlobStore, "delete", failing_delete)

    resp = client.delete(f"/api/documents/{doc['id']}")
    assert resp.status_code == 500
    assert client.get(f"/api/documents/{doc['id']}").status_code == 200


def test_read_content_of_deleted_document_not_found(db_session):
    doc = document_service.store_document(data=b"abc", name="gone.txt", content_type="text/plain")
    document_service.delete_document(document_id=doc.id)

    with pytest.raises(NotFoundError):
        document_service.read_document_content(doc.id)


def test_upload_logs_activity(client, db_session):
    _upload(client)
    latest = db_session.query(ActivityLog).order_by(ActivityLog.id.desc()).first()
    assert latest.user == "alice"
    assert latest.action == "Uploaded document: notes.txt (text/plain)"
