# backend/invdocs/routes/inventory.py
"""
Inventory item and stock movement routes.

Quantity semantics:
- GET responses carry the ledger-derived quantity (SUM(IN) - SUM(OUT)).
- POST/PUT accept `quantity` as a target level; the service records the
  difference as an IN/OUT movement.
- POST /<id>/movements appends a movement directly; an OUT larger than the
  current stock is rejected and nothing is written.
"""
from flask import Blueprint, request, g

from ..decorators import with_actor
from ..models import InventoryItem
from ..validation import (
    AMOUNT_ALIASES,
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
    ConflictError,
    InsufficientStockError,
    enforce_rules_inventory_item,
    enforce_rules_stock_movement,
)
from ..services import inventory_service, stock_ledger_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

INVENTORY_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "category", "unit_cost_cents", "unit_price_cents"},
    required_on_create={"sku", "name"},
    extra_fields={"quantity", *AMOUNT_ALIASES},
)


def _insufficient_stock_body(e: InsufficientStockError) -> dict:
    return {"error": str(e), "available": e.available, "requested": e.requested}


@inventory_bp.get("")
def list_items_route():
    category = request.args.get("category")
    return inventory_service.list_items(category=category), 200


@inventory_bp.post("")
@with_actor
def create_item_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=InventoryItem,
            payload=payload,
            policy=INVENTORY_ITEM_POLICY,
            partial=False,
        )
        enforce_rules_inventory_item(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        item = inventory_service.create_item(patch=patch, user=g.actor)
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"item": item}, 201


@inventory_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    try:
        return {"item": inventory_service.get_item(item_id)}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@inventory_bp.put("/<int:item_id>")
@with_actor
def update_item_route(item_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=InventoryItem,
            payload=payload,
            policy=INVENTORY_ITEM_POLICY,
            partial=True,
        )
        enforce_rules_inventory_item(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        item = inventory_service.update_item(item_id=item_id, patch=patch, user=g.actor)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except InsufficientStockError as e:
        return _insufficient_stock_body(e), 400

    return {"item": item}, 200


@inventory_bp.delete("/<int:item_id>")
@with_actor
def delete_item_route(item_id: int):
    try:
        inventory_service.delete_item(item_id=item_id, user=g.actor)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return "", 204


@inventory_bp.post("/<int:item_id>/movements")
@with_actor
def record_movement_route(item_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    try:
        enforce_rules_stock_movement(payload)
        movement = stock_ledger_service.record_movement(
            item_id=item_id,
            movement_type=payload["type"],
            quantity=payload["quantity"],
            user=g.actor,
            note=payload.get("note"),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InsufficientStockError as e:
        return _insufficient_stock_body(e), 400
    except ValidationError as e:
        return {"error": str(e)}, 400

    summary = stock_ledger_service.get_stock_summary(item_id)
    return {"movement": movement.to_dict(), "summary": summary}, 201


@inventory_bp.get("/<int:item_id>/movements")
def list_movements_route(item_id: int):
    try:
        movements = stock_ledger_service.list_movements(item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": [m.to_dict() for m in movements], "count": len(movements)}, 200


@inventory_bp.get("/<int:item_id>/stock")
def stock_summary_route(item_id: int):
    try:
        return stock_ledger_service.get_stock_summary(item_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
