# Overview: Ledger-derived stock levels; appends IN/OUT movements and guards against overdraw.

from __future__ import annotations

from typing import Iterable, Iterator

from sqlalchemy import case, func

from ..extensions import db
from ..models import InventoryItem, StockMovement
from ..validation import (
    MOVEMENT_TYPES,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    coerce_int,
)
from invdocs.time_utils import utcnow
from .activity_service import log_activity, normalize_actor
from .concurrency import keyed_lock, lock_for_update, run_with_retry
"""
Stock Ledger Invariants (authoritative)

Inventory model:
- Stock is ledger-derived from StockMovement rows; never stored as a mutable quantity field.
- Quantity on hand is SUM(IN quantities) - SUM(OUT quantities) for the item.

Business invariants:
- Movement quantity is a positive integer; direction is carried by type (IN | OUT).
- On-hand quantity may never go negative: an OUT larger than the current
  stock is rejected and nothing is written.
- Movements are append-only (no updates/deletes).

Concurrency:
- The stock check and the append run under a per-item in-process lock plus a
  row lock on the item (honored by databases that support FOR UPDATE), inside
  run_with_retry.

Audit:
- Each accepted movement appends an activity log entry after commit.
"""


HISTORY_BATCH_SIZE = 200


def stock_lock_key(item_id: int) -> tuple:
    return ("stock", item_id)


def _signed_quantity_expr():
    return case(
        (StockMovement.type == "IN", StockMovement.quantity),
        else_=-StockMovement.quantity,
    )


def _get_item(item_id: int, *, lock: bool = False) -> InventoryItem:
    query = db.session.query(InventoryItem).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def current_stock(item_id: int) -> int:
    """
    SUM(IN) - SUM(OUT) over every movement recorded for the item (0 if none).

    Pure function of the movement log; no caching.
    """
    q = db.session.query(
        func.coalesce(func.sum(_signed_quantity_expr()), 0)
    ).filter(StockMovement.item_id == item_id)
    return int(q.scalar() or 0)


def stock_levels(item_ids: Iterable[int]) -> dict[int, int]:
    """Bulk current_stock for list views and reports. Missing ids map to 0."""
    ids = list(item_ids)
    if not ids:
        return {}

    rows = (
        db.session.query(
            StockMovement.item_id,
            func.coalesce(func.sum(_signed_quantity_expr()), 0),
        )
        .filter(StockMovement.item_id.in_(ids))
        .group_by(StockMovement.item_id)
        .all()
    )
    levels = {item_id: 0 for item_id in ids}
    for item_id, qty in rows:
        levels[item_id] = int(qty or 0)
    return levels


def history(item_id: int) -> Iterator[StockMovement]:
    """
    Lazily yield the item's movements in append order.

    Each call issues a fresh read of the log, so the sequence can be
    restarted by calling again.
    """
    query = (
        db.session.query(StockMovement)
        .filter(StockMovement.item_id == item_id)
        .order_by(StockMovement.id.asc())
        .yield_per(HISTORY_BATCH_SIZE)
    )
    for movement in query:
        yield movement


def append_movement_inner(
    *,
    item: InventoryItem,
    movement_type: str,
    quantity: int,
    user: str,
    note: str | None = None,
) -> StockMovement:
    """Core append without locking, retry or commit.

    Called by record_movement() and by item create/update when a direct
    quantity edit is translated into an implicit movement.
    """
    if movement_type == "OUT":
        available = current_stock(item.id)
        if quantity > available:
            raise InsufficientStockError(
                f"Insufficient stock for {item.sku}: requested {quantity}, available {available}",
                available=available,
                requested=quantity,
            )

    movement = StockMovement(
        item_id=item.id,
        sku=item.sku,
        type=movement_type,
        quantity=quantity,
        user=user,
        note=note,
        timestamp=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def describe_movement(movement: StockMovement, item_name: str) -> str:
    return f"Stock {movement.type}: {movement.quantity} x {item_name} ({movement.sku})"


def record_movement(
    *,
    item_id: int,
    movement_type: str,
    quantity,
    user=None,
    note: str | None = None,
) -> StockMovement:
    """
    Append an IN or OUT movement for an item.

    Raises:
        NotFoundError: item does not exist
        ValidationError: quantity is not a positive integer or type is not IN/OUT
        InsufficientStockError: OUT exceeds current stock (nothing is written)
    """
    movement_type = str(movement_type or "").strip().upper()
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be IN or OUT")
    qty = coerce_int("quantity", quantity)
    if qty <= 0:
        raise ValidationError("quantity must be > 0")

    actor = normalize_actor(user)

    def _op():
        item = _get_item(item_id, lock=True)
        movement = append_movement_inner(
            item=item,
            movement_type=movement_type,
            quantity=qty,
            user=actor,
            note=note,
        )
        db.session.commit()
        return movement, item.name

    with keyed_lock(stock_lock_key(item_id)):
        try:
            movement, item_name = run_with_retry(_op)
        except (NotFoundError, InsufficientStockError):
            db.session.rollback()
            raise

    log_activity(actor, describe_movement(movement, item_name))
    return movement


def get_stock_summary(item_id: int) -> dict:
    item = _get_item(item_id)

    totals = dict(
        db.session.query(StockMovement.type, func.coalesce(func.sum(StockMovement.quantity), 0))
        .filter(StockMovement.item_id == item_id)
        .group_by(StockMovement.type)
        .all()
    )
    total_in = int(totals.get("IN", 0) or 0)
    total_out = int(totals.get("OUT", 0) or 0)

    return {
        "item_id": item.id,
        "sku": item.sku,
        "total_in": total_in,
        "total_out": total_out,
        "quantity": total_in - total_out,
    }


def list_movements(item_id: int) -> list[StockMovement]:
    _get_item(item_id)
    return list(history(item_id))
