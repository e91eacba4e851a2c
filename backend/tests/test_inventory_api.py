from invdocs.models import ActivityLog, InventoryItem, StockMovement


def _create(client, headers=None, **overrides):
    payload = {
        "sku": "SKU-1",
        "name": "Widget",
        "category": "Parts",
        "unit_cost_cents": 200,
        "unit_price_cents": 350,
    }
    payload.update(overrides)
    return client.post("/api/inventory", json=payload, headers=headers or {})


def test_create_with_quantity_records_initial_movement(client, db_session, actor_headers):
    resp = _create(client, actor_headers, quantity=5)
    assert resp.status_code == 201
    item = resp.get_json()["item"]
    assert item["quantity"] == 5
    assert item["unit_price"] == 3.5

    movements = db_session.query(StockMovement).filter_by(item_id=item["id"]).all()
    assert [(m.type, m.quantity, m.note) for m in movements] == [("IN", 5, "Initial stock")]

    latest = db_session.query(ActivityLog).order_by(ActivityLog.id.desc()).first()
    assert latest.user == "alice"
    assert latest.action == "Added: Widget"


def test_create_missing_fields_lists_them(client, db_session):
    resp = client.post("/api/inventory", json={"category": "Parts"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Missing required fields: name, sku"


def test_create_duplicate_sku_conflict(client, db_session):
    assert _create(client).status_code == 201
    resp = _create(client, name="Other")
    assert resp.status_code == 409


def test_negative_money_rejected(client, db_session):
    resp = _create(client, unit_cost_cents=-1)
    assert resp.status_code == 400


def test_decimal_amounts_are_stored_as_cents(client, db_session):
    resp = client.post(
        "/api/inventory",
        json={"sku": "A1", "name": "Widget", "unitCost": "2.675", "unit_price": 3.5},
    )
    assert resp.status_code == 201
    item = resp.get_json()["item"]
    assert item["unit_cost_cents"] == 268
    assert item["unit_price_cents"] == 350

    resp = client.put(f"/api/inventory/{item['id']}", json={"unit_cost": "4"})
    assert resp.status_code == 200
    assert resp.get_json()["item"]["unit_cost_cents"] == 400


def test_decimal_amount_validation(client, db_session):
    both = {"sku": "A1", "name": "Widget", "unit_cost": "2.00", "unit_cost_cents": 200}
    assert client.post("/api/inventory", json=both).status_code == 400

    for bad in ("abc", "NaN", True, -1, "1e30"):
        resp = client.post("/api/inventory", json={"sku": "A1", "name": "Widget", "unit_price": bad})
        assert resp.status_code == 400, bad

    assert db_session.query(InventoryItem).count() == 0


def test_get_list_and_missing(client, db_session):
    created = _create(client, quantity=2).get_json()["item"]

    resp = client.get("/api/inventory")
    body = resp.get_json()
    assert body["count"] == 1
    assert body["items"][0]["quantity"] == 2

    assert client.get(f"/api/inventory/{created['id']}").status_code == 200
    assert client.get("/api/inventory/9999").status_code == 404


def test_quantity_edit_becomes_movement(client, db_session, actor_headers):
    item = _create(client, quantity=10).get_json()["item"]

    resp = client.put(f"/api/inventory/{item['id']}", json={"quantity": 4}, headers=actor_headers)
    assert resp.status_code == 200
    assert resp.get_json()["item"]["quantity"] == 4

    movements = (
        db_session.query(StockMovement)
        .filter_by(item_id=item["id"])
        .order_by(StockMovement.id)
        .all()
    )
    assert [(m.type, m.quantity) for m in movements] == [("IN", 10), ("OUT", 6)]


def test_update_partial_merge(client, db_session):
    item = _create(client).get_json()["item"]

    resp = client.put(f"/api/inventory/{item['id']}", json={"name": "Widget XL"})
    assert resp.status_code == 200
    updated = resp.get_json()["item"]
    assert updated["name"] == "Widget XL"
    assert updated["sku"] == "SKU-1"
    assert updated["unit_cost_cents"] == 200

    assert client.put("/api/inventory/9999", json={"name": "x"}).status_code == 404


def test_update_to_existing_sku_conflict(client, db_session):
    _create(client)
    other = _create(client, sku="SKU-2").get_json()["item"]

    resp = client.put(f"/api/inventory/{other['id']}", json={"sku": "SKU-1"})
    assert resp.status_code == 409


def test_delete_is_irreversible_and_keeps_movements(client, db_session, actor_headers):
    item = _create(client, quantity=3).get_json()["item"]

    resp = client.delete(f"/api/inventory/{item['id']}", headers=actor_headers)
    assert resp.status_code == 204
    assert db_session.get(InventoryItem, item["id"]) is None
    assert client.get(f"/api/inventory/{item['id']}").status_code == 404
    assert client.delete(f"/api/inventory/{item['id']}").status_code == 404

    assert db_session.query(StockMovement).filter_by(item_id=item["id"]).count() == 1


def test_movement_endpoints(client, db_session, actor_headers):
    item = _create(client).get_json()["item"]
    url = f"/api/inventory/{item['id']}/movements"

    resp = client.post(url, json={"type": "IN", "quantity": 50}, headers=actor_headers)
    assert resp.status_code == 201
    assert resp.get_json()["summary"]["quantity"] == 50

    resp = client.post(url, json={"type": "OUT", "quantity": 20}, headers=actor_headers)
    assert resp.status_code == 201

    resp = client.post(url, json={"type": "OUT", "quantity": 40}, headers=actor_headers)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["available"] == 30
    assert body["requested"] == 40

    history = client.get(url).get_json()
    assert [(m["type"], m["quantity"]) for m in history["items"]] == [("IN", 50), ("OUT", 20)]

    stock = client.get(f"/api/inventory/{item['id']}/stock").get_json()
    assert stock["quantity"] == 30


def test_movement_validation(client, db_session):
    item = _create(client).get_json()["item"]
    url = f"/api/inventory/{item['id']}/movements"

    assert client.post(url, json={"type": "IN", "quantity": 0}).status_code == 400
    assert client.post(url, json={"type": "MOVE", "quantity": 1}).status_code == 400
    assert client.post("/api/inventory/9999/movements", json={"type": "IN", "quantity": 1}).status_code == 404
    assert client.get("/api/inventory/9999/movements").status_code == 404


def test_actor_defaults_to_unknown(client, db_session):
    _create(client)
    latest = db_session.query(ActivityLog).order_by(ActivityLog.id.desc()).first()
    assert latest.user == "Unknown"


def test_health_endpoints(client, db_session):
    assert client.get("/api/test").status_code == 200
    assert client.get("/health").get_json()["status"] == "healthy"
