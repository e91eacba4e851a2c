from __future__ import annotations

from ..extensions import db
from invdocs.time_utils import to_utc_z


ORDER_KINDS = {
    # kind -> (sequence document_type, number prefix)
    "ORDER": ("ORDER", "ORD"),
    "SALE": ("SALE", "SAL"),
}


class Order(db.Model):
    """
    Customer order or completed sale.

    Orders and sales share one table and are told apart by `kind`.
    Totals are computed by the service from the lines and stored in cents.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_orders_number"),
        db.Index("ix_orders_kind_date", "kind", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(8), nullable=False, index=True)
    number = db.Column(db.String(32), nullable=False)

    customer = db.Column(db.String(255), nullable=False)
    contact = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(32), nullable=False, default="Pending")
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.position",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "number": self.number,
            "customer": self.customer,
            "contact": self.contact,
            "status": self.status,
            "date": to_utc_z(self.date),
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "lines": [line.to_dict() for line in self.lines],
        }


class OrderLine(db.Model):
    __tablename__ = "order_lines"
    __table_args__ = (
        db.Index("ix_order_lines_order_position", "order_id", "position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    qty = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "qty": self.qty,
            "price_cents": self.price_cents,
            "line_total_cents": self.line_total_cents,
        }
