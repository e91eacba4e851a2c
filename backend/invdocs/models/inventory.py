from __future__ import annotations

from ..extensions import db
from invdocs.time_utils import to_utc_z


def cents_to_amount(cents: int | None) -> float | None:
    """Convenience projection for clients that display plain amounts."""
    if cents is None:
        return None
    return cents / 100


class InventoryItem(db.Model):
    """
    Inventory master data.

    Quantity is NOT stored here. On-hand stock is ledger-derived from
    StockMovement rows (see services/stock_ledger_service.py) and is attached
    to API payloads by the service layer.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_inventory_items_sku"),
        db.Index("ix_inventory_items_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self, quantity: int | None = None) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "quantity": quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost": cents_to_amount(self.unit_cost_cents),
            "unit_price": cents_to_amount(self.unit_price_cents),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger row.

    item_id is a weak reference: there is no foreign key so the audit trail
    survives deletion of the item it describes. Rows are never updated or
    deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_item_id_id", "item_id", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    item_id = db.Column(db.Integer, nullable=False, index=True)
    sku = db.Column(db.String(64), nullable=True)

    type = db.Column(db.String(8), nullable=False, index=True)  # IN | OUT
    quantity = db.Column(db.Integer, nullable=False)

    user = db.Column(db.String(64), nullable=False, default="Unknown")
    note = db.Column(db.String(255), nullable=True)

    timestamp = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.type == "IN" else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "sku": self.sku,
            "type": self.type,
            "quantity": self.quantity,
            "user": self.user,
            "note": self.note,
            "timestamp": to_utc_z(self.timestamp),
        }
