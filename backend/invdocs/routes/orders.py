# backend/invdocs/routes/orders.py
"""
Order and sale document routes.

/api/orders and /api/sales expose the same CRUD surface; the blueprint is
built once per kind. Numbers (ORD-<n>, SAL-<n>) are allocated by the server
and cannot be set by clients. Orders and sales do not move stock.
"""
from flask import Blueprint, request, g

from ..decorators import with_actor
from ..models import Order
from ..services import order_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
)


ORDER_POLICY = ModelValidationPolicy(
    writable_fields={"customer", "contact", "status", "date"},
    required_on_create={"customer", "lines"},
    extra_fields={"lines"},
)


def _build_blueprint(kind: str, name: str, url_prefix: str) -> Blueprint:
    bp = Blueprint(name, __name__, url_prefix=url_prefix)

    @bp.get("")
    def list_route():
        orders = order_service.list_orders(kind)
        return {"items": [o.to_dict() for o in orders], "count": len(orders)}, 200

    @bp.post("")
    @with_actor
    def create_route():
        payload = request.get_json(silent=True) or {}
        try:
            patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=False)
            order = order_service.create_order(kind=kind, patch=patch, user=g.actor)
        except ValidationError as e:
            return {"error": str(e)}, 400
        return {"order": order.to_dict()}, 201

    @bp.get("/<int:order_id>")
    def get_route(order_id: int):
        try:
            order = order_service.get_order(kind, order_id)
        except NotFoundError as e:
            return {"error": str(e)}, 404
        return {"order": order.to_dict()}, 200

    @bp.put("/<int:order_id>")
    @with_actor
    def update_route(order_id: int):
        payload = request.get_json(silent=True) or {}
        try:
            patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=True)
            order = order_service.update_order(kind=kind, order_id=order_id, patch=patch, user=g.actor)
        except NotFoundError as e:
            return {"error": str(e)}, 404
        except ValidationError as e:
            return {"error": str(e)}, 400
        return {"order": order.to_dict()}, 200

    @bp.delete("/<int:order_id>")
    @with_actor
    def delete_route(order_id: int):
        try:
            order_service.delete_order(kind=kind, order_id=order_id, user=g.actor)
        except NotFoundError as e:
            return {"error": str(e)}, 404
        return "", 204

    return bp


orders_bp = _build_blueprint("ORDER", "orders", "/api/orders")
sales_bp = _build_blueprint("SALE", "sales", "/api/sales")
