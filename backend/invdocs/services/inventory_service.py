# backend/invdocs/services/inventory_service.py
"""
Inventory Item Service

Item master data CRUD. Quantity is ledger-derived:
- create_item with quantity > 0 records an implicit IN movement
- update_item with a new quantity records an implicit IN/OUT for the difference
- delete_item is a hard delete; the item's movements stay in the ledger
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InventoryItem
from ..validation import ConflictError, NotFoundError, InsufficientStockError
from .activity_service import log_activity, normalize_actor
from .concurrency import keyed_lock, run_with_retry
from .stock_ledger_service import (
    append_movement_inner,
    current_stock,
    stock_levels,
    stock_lock_key,
)

ITEM_MUTABLE_FIELDS = {"sku", "name", "category", "unit_cost_cents", "unit_price_cents"}


def apply_item_patch(item: InventoryItem, patch: dict) -> None:
    for k, v in patch.items():
        if k not in ITEM_MUTABLE_FIELDS:
            continue
        setattr(item, k, v)


def _require_unique_sku(sku: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(InventoryItem).filter(InventoryItem.sku == sku)
    if exclude_id is not None:
        query = query.filter(InventoryItem.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("SKU already exists.")


def list_items(category: str | None = None) -> dict:
    """All items ordered by name, each with its ledger-derived quantity."""
    query = db.session.query(InventoryItem)
    if category:
        query = query.filter(InventoryItem.category == category)
    items = query.order_by(InventoryItem.name.asc(), InventoryItem.id.asc()).all()

    levels = stock_levels(item.id for item in items)
    return {
        "items": [item.to_dict(quantity=levels.get(item.id, 0)) for item in items],
        "count": len(items),
    }


def get_item_or_404(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError("Item not found")
    return item


def get_item(item_id: int) -> dict:
    item = get_item_or_404(item_id)
    return item.to_dict(quantity=current_stock(item.id))


def create_item(*, patch: dict, user=None) -> dict:
    """
    Create an inventory item from a validated patch dict.

    Raises:
        ConflictError: If the SKU already exists
    """
    actor = normalize_actor(user)
    initial_qty = patch.get("quantity") or 0

    _require_unique_sku(patch["sku"])

    item = InventoryItem()
    apply_item_patch(item, patch)
    db.session.add(item)

    try:
        db.session.flush()  # ensure item.id exists before the opening movement
        if initial_qty > 0:
            append_movement_inner(
                item=item,
                movement_type="IN",
                quantity=initial_qty,
                user=actor,
                note="Initial stock",
            )
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("SKU already exists.") from exc

    log_activity(actor, f"Added: {item.name}")
    return item.to_dict(quantity=initial_qty)


def update_item(*, item_id: int, patch: dict, user=None) -> dict:
    """
    Partial update of an item.

    A quantity in the patch is a target level: the difference to the current
    ledger stock is recorded as an IN or OUT movement.

    Raises:
        NotFoundError: item does not exist
        ConflictError: new SKU already used by another item
    """
    actor = normalize_actor(user)

    def _op():
        item = get_item_or_404(item_id)

        if "sku" in patch and patch["sku"] != item.sku:
            _require_unique_sku(patch["sku"], exclude_id=item.id)

        apply_item_patch(item, patch)
        db.session.flush()

        if "quantity" in patch:
            delta = patch["quantity"] - current_stock(item.id)
            if delta:
                append_movement_inner(
                    item=item,
                    movement_type="IN" if delta > 0 else "OUT",
                    quantity=abs(delta),
                    user=actor,
                    note="Quantity edited",
                )

        db.session.commit()
        return item

    with keyed_lock(stock_lock_key(item_id)):
        try:
            item = run_with_retry(_op)
        except (NotFoundError, ConflictError, InsufficientStockError):
            db.session.rollback()
            raise
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError("SKU already exists.") from exc

    log_activity(actor, f"Updated: {item.name}")
    return item.to_dict(quantity=current_stock(item.id))


def delete_item(*, item_id: int, user=None) -> None:
    """
    Hard-delete an item. Irreversible; movements remain as audit trail.

    Raises:
        NotFoundError: item does not exist
    """
    actor = normalize_actor(user)
    item = get_item_or_404(item_id)
    name = item.name

    db.session.delete(item)
    db.session.commit()

    log_activity(actor, f"Deleted: {name}")
