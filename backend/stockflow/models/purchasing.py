from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


class PurchaseOrder(db.Model):
    """
    Purchase order placed with a supplier.

    LIFECYCLE:
    1. DRAFT / PENDING: editable; lines may be replaced
    2. ORDERED: sent to the supplier (ordered_at stamped once)
    3. PARTIAL: some lines received
    4. RECEIVED: every line fully received (received_at stamped)
    CANCELLED is reachable from any status before RECEIVED.

    Totals: total_amount_cents = subtotal + tax + shipping, where subtotal is
    the sum of line totals. Receiving increments the stock ledger.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_supplier_status", "supplier_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)

    expected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ordered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        result = {
            "id": self.id,
            "order_number": self.order_number,
            "supplier_id": self.supplier_id,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_amount_cents": self.tax_amount_cents,
            "shipping_amount_cents": self.shipping_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "notes": self.notes,
            "expected_at": to_utc_z(self.expected_at),
            "ordered_at": to_utc_z(self.ordered_at),
            "received_at": to_utc_z(self.received_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "item_count": len(self.items),
        }
        if include_items:
            result["items"] = [item.to_dict() for item in self.items]
        return result


class PurchaseOrderItem(db.Model):
    """Line on a purchase order. 0 <= received_qty <= quantity."""
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("received_qty >= 0", name="ck_po_items_received_non_negative"),
        db.CheckConstraint("received_qty <= quantity", name="ck_po_items_received_le_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)
    received_qty = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    product = db.relationship("Product", backref=db.backref("purchase_order_items", lazy=True))

    @property
    def remaining_qty(self) -> int:
        return self.quantity - (self.received_qty or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "received_qty": self.received_qty,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
