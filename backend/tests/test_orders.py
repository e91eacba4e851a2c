import pytest

from invdocs.models import ActivityLog, StockMovement
from invdocs.services import order_service
from invdocs.services.document_service import next_document_number, DocumentSequenceError


LINES = [
    {"sku": "A1", "name": "Widget", "qty": 2, "price_cents": 450},
    {"sku": "B2", "name": "Bolt", "qty": 10, "price_cents": 15},
]


def test_document_numbers_are_sequential_per_type(db_session):
    numbers = [next_document_number(document_type="ORDER", prefix="ORD") for _ in range(3)]
    db_session.commit()
    assert numbers == ["ORD-1", "ORD-2", "ORD-3"]

    assert next_document_number(document_type="SALE", prefix="SAL") == "SAL-1"
    assert next_document_number(document_type="INVOICE", prefix="INV", pad=4) == "INV-0001"


def test_document_number_requires_type(db_session):
    with pytest.raises(DocumentSequenceError):
        next_document_number(document_type="", prefix="X")


def test_create_order_computes_totals(client, db_session):
    resp = client.post(
        "/api/orders",
        json={"customer": "Acme", "contact": "555-0100", "lines": LINES},
        headers={"X-Username": "alice"},
    )
    assert resp.status_code == 201
    order = resp.get_json()["order"]
    assert order["number"] == "ORD-1"
    assert order["status"] == "Pending"
    assert order["total_cents"] == 1050
    assert [line["line_total_cents"] for line in order["lines"]] == [900, 150]

    latest = db_session.query(ActivityLog).order_by(ActivityLog.id.desc()).first()
    assert latest.action == "Created order: ORD-1 for Acme"


def test_orders_and_sales_are_numbered_independently(client, db_session):
    client.post("/api/orders", json={"customer": "Acme", "lines": LINES})
    client.post("/api/orders", json={"customer": "Beta", "lines": LINES})
    sale = client.post("/api/sales", json={"customer": "Acme", "lines": LINES}).get_json()["order"]

    assert sale["number"] == "SAL-1"
    assert sale["kind"] == "SALE"
    assert client.get("/api/orders").get_json()["count"] == 2
    assert client.get("/api/sales").get_json()["count"] == 1


def test_orders_do_not_move_stock(client, db_session):
    client.post("/api/sales", json={"customer": "Acme", "lines": LINES})
    assert db_session.query(StockMovement).count() == 0


def test_create_order_validation(client, db_session):
    resp = client.post("/api/orders", json={"lines": LINES})
    assert resp.status_code == 400
    assert "customer" in resp.get_json()["error"]

    resp = client.post("/api/orders", json={"customer": "Acme", "lines": []})
    assert resp.status_code == 400

    bad_line = [{"sku": "A1", "name": "Widget", "qty": 0, "price_cents": 100}]
    resp = client.post("/api/orders", json={"customer": "Acme", "lines": bad_line})
    assert resp.status_code == 400

    resp = client.post("/api/orders", json={"customer": "Acme", "lines": LINES, "number": "ORD-99"})
    assert resp.status_code == 400


def test_update_replaces_lines_and_recomputes(client, db_session):
    order = client.post("/api/orders", json={"customer": "Acme", "lines": LINES}).get_json()["order"]

    resp = client.put(
        f"/api/orders/{order['id']}",
        json={"status": "Shipped", "lines": [{"sku": "C3", "name": "Nut", "qty": 4, "price_cents": 25}]},
    )
    assert resp.status_code == 200
    updated = resp.get_json()["order"]
    assert updated["status"] == "Shipped"
    assert updated["customer"] == "Acme"
    assert updated["total_cents"] == 100
    assert len(updated["lines"]) == 1


def test_kind_mismatch_is_not_found(client, db_session):
    order = client.post("/api/orders", json={"customer": "Acme", "lines": LINES}).get_json()["order"]

    assert client.get(f"/api/sales/{order['id']}").status_code == 404
    assert client.get(f"/api/orders/{order['id']}").status_code == 200


def test_delete_order(client, db_session):
    order = client.post("/api/orders", json={"customer": "Acme", "lines": LINES}).get_json()["order"]

    assert client.delete(f"/api/orders/{order['id']}").status_code == 204
    assert client.get(f"/api/orders/{order['id']}").status_code == 404
    assert client.delete(f"/api/orders/{order['id']}").status_code == 404


def test_numbers_are_not_reused_after_delete(db_session):
    first = order_service.create_order(kind="ORDER", patch={"customer": "Acme", "lines": LINES})
    order_service.delete_order(kind="ORDER", order_id=first.id)
    second = order_service.create_order(kind="ORDER", patch={"customer": "Acme", "lines": LINES})

    assert second.number == "ORD-2"
