from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


class StockItem(db.Model):
    """
    On-hand quantity of one product in one warehouse.

    INVARIANTS (enforced by the service layer and backed by CHECK constraints):
    - quantity >= 0, reserved_qty >= 0
    - reserved_qty <= quantity
    - available_qty == quantity - reserved_qty (never written directly by clients)

    Rows are created lazily on the first stock write for a (product, warehouse)
    pair. last_count_at is only stamped by physical inventory counts.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_stock_items_product_warehouse"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        db.CheckConstraint("reserved_qty >= 0", name="ck_stock_items_reserved_non_negative"),
        db.CheckConstraint("reserved_qty <= quantity", name="ck_stock_items_reserved_le_quantity"),
        db.CheckConstraint("available_qty = quantity - reserved_qty", name="ck_stock_items_available"),
        db.Index("ix_stock_items_warehouse", "warehouse_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    reserved_qty = db.Column(db.Integer, nullable=False, default=0)
    available_qty = db.Column(db.Integer, nullable=False, default=0)

    last_count_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("stock_items", lazy=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("stock_items", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def set_levels(self, quantity: int, reserved_qty: int) -> None:
        self.quantity = quantity
        self.reserved_qty = reserved_qty
        self.available_qty = quantity - reserved_qty

    def __repr__(self) -> str:
        return (
            f"<StockItem product_id={self.product_id} warehouse_id={self.warehouse_id} "
            f"qty={self.quantity} reserved={self.reserved_qty}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "reserved_qty": self.reserved_qty,
            "available_qty": self.available_qty,
            "last_count_at": to_utc_z(self.last_count_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
