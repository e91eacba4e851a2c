# backend/invdocs/services/order_service.py
"""
Orders & Sales Service

Orders (ORD-<n>) and sales (SAL-<n>) share one model distinguished by kind.
Totals are always recomputed from the lines: total = SUM(qty * price_cents).
Numbers come from the atomic document sequence, not from a row count.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Order, OrderLine, ORDER_KINDS
from ..validation import NotFoundError, ValidationError, normalize_order_lines
from invdocs.time_utils import utcnow
from .activity_service import log_activity, normalize_actor
from .document_service import next_document_number

ORDER_MUTABLE_FIELDS = {"customer", "contact", "status", "date"}

KIND_LABELS = {"ORDER": "order", "SALE": "sale"}


def _require_kind(kind: str) -> str:
    kind = (kind or "").upper()
    if kind not in ORDER_KINDS:
        raise ValidationError(f"kind must be one of: {', '.join(ORDER_KINDS)}")
    return kind


def _set_lines(order: Order, lines: list[dict]) -> None:
    order.lines = [
        OrderLine(
            position=idx,
            sku=line["sku"],
            name=line["name"],
            qty=line["qty"],
            price_cents=line["price_cents"],
            line_total_cents=line["qty"] * line["price_cents"],
        )
        for idx, line in enumerate(lines)
    ]
    subtotal = sum(line.line_total_cents for line in order.lines)
    order.subtotal_cents = subtotal
    order.total_cents = subtotal


def list_orders(kind: str) -> list[Order]:
    kind = _require_kind(kind)
    return (
        db.session.query(Order)
        .filter(Order.kind == kind)
        .order_by(Order.date.desc(), Order.id.desc())
        .all()
    )


def get_order(kind: str, order_id: int) -> Order:
    kind = _require_kind(kind)
    order = db.session.get(Order, order_id)
    if order is None or order.kind != kind:
        raise NotFoundError(f"{KIND_LABELS[kind].capitalize()} not found")
    return order


def create_order(*, kind: str, patch: dict, user=None) -> Order:
    """
    Create an order or sale from a validated patch.

    patch must contain `customer` and `lines`; optional contact/status/date.
    """
    kind = _require_kind(kind)
    actor = normalize_actor(user)
    lines = normalize_order_lines(patch.get("lines"))

    document_type, prefix = ORDER_KINDS[kind]
    number = next_document_number(document_type=document_type, prefix=prefix)

    order = Order(kind=kind, number=number, created_by=actor)
    for k, v in patch.items():
        if k in ORDER_MUTABLE_FIELDS and v is not None:
            setattr(order, k, v)
    if order.date is None:
        order.date = utcnow()
    _set_lines(order, lines)

    db.session.add(order)
    db.session.commit()

    log_activity(actor, f"Created {KIND_LABELS[kind]}: {order.number} for {order.customer}")
    return order


def update_order(*, kind: str, order_id: int, patch: dict, user=None) -> Order:
    """Partial merge; replacing `lines` recomputes the totals."""
    order = get_order(kind, order_id)
    actor = normalize_actor(user)

    for k, v in patch.items():
        if k in ORDER_MUTABLE_FIELDS:
            setattr(order, k, v)
    if "lines" in patch:
        _set_lines(order, normalize_order_lines(patch["lines"]))

    db.session.commit()

    log_activity(actor, f"Updated {KIND_LABELS[order.kind]}: {order.number}")
    return order


def delete_order(*, kind: str, order_id: int, user=None) -> None:
    order = get_order(kind, order_id)
    number = order.number
    label = KIND_LABELS[order.kind]

    db.session.delete(order)
    db.session.commit()

    log_activity(user, f"Deleted {label}: {number}")
