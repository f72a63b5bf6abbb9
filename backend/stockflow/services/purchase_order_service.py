# Overview: Purchase order workflow; drafting, status transitions and receiving into stock.

"""
Purchase Order Service

LIFECYCLE (total transition table, see TRANSITIONS):
    DRAFT <-> PENDING -> ORDERED -> PARTIAL -> RECEIVED
    any non-terminal status -> CANCELLED
Same-status updates are no-ops. RECEIVED and CANCELLED are terminal.

Header and lines are editable only while DRAFT or PENDING. After that the
order only moves through receive() and cancel().

RECEIVING is all-or-nothing: the order row and every touched stock row are
locked, lines are incremented, stock is upserted and the status recomputed
inside one transaction. Quantities are clamped to what is still outstanding,
so re-sending a receive for fully received lines changes nothing.
"""

from __future__ import annotations

from ..concurrency import atomic, lock_for_update
from ..extensions import db
from ..errors import InvalidStateError, InvalidTransitionError, NotFoundError, ValidationError
from ..identity import Identity
from ..models import Product, PurchaseOrder, PurchaseOrderItem, StockItem, Supplier, Warehouse
from ..pagination import paginate
from ..validation import ModelValidationPolicy, coerce_int, validate_money, validate_payload
from . import audit_service
from .crud import commit_or_conflict, flush_or_conflict, ensure_unique, get_or_404
from .numbering import generate_order_number
from stockflow.time_utils import utcnow


STATUSES = ("DRAFT", "PENDING", "ORDERED", "PARTIAL", "RECEIVED", "CANCELLED")

TRANSITIONS = {
    "DRAFT": {"PENDING", "ORDERED", "CANCELLED"},
    "PENDING": {"DRAFT", "ORDERED", "CANCELLED"},
    "ORDERED": {"PARTIAL", "RECEIVED", "CANCELLED"},
    "PARTIAL": {"RECEIVED", "CANCELLED"},
    "RECEIVED": set(),
    "CANCELLED": set(),
}

EDITABLE_STATUSES = ("DRAFT", "PENDING")
RECEIVABLE_STATUSES = ("ORDERED", "PARTIAL")

CREATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "supplier_id", "order_number", "tax_amount_cents", "shipping_amount_cents",
        "notes", "expected_at",
    }),
    required_on_create=frozenset({"supplier_id"}),
    non_negative=frozenset({"tax_amount_cents", "shipping_amount_cents"}),
    money_fields=frozenset({"tax_amount_cents", "shipping_amount_cents"}),
)

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "status", "tax_amount_cents", "shipping_amount_cents", "notes", "expected_at",
    }),
    non_negative=frozenset({"tax_amount_cents", "shipping_amount_cents"}),
    money_fields=frozenset({"tax_amount_cents", "shipping_amount_cents"}),
)


def can_transition(current: str, target: str) -> bool:
    return target == current or target in TRANSITIONS.get(current, set())


def _apply_status(po: PurchaseOrder, target: str) -> None:
    """Move po to target, stamping lifecycle timestamps. Raises on illegal moves."""
    if target not in STATUSES:
        raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
    if target == po.status:
        return
    if not can_transition(po.status, target):
        raise InvalidTransitionError(po.status, target)

    now = utcnow()
    if target == "ORDERED" and po.ordered_at is None:
        po.ordered_at = now
    elif target == "RECEIVED":
        po.received_at = now
    elif target == "CANCELLED":
        po.cancelled_at = now
    po.status = target


def _build_items(raw_items) -> list[PurchaseOrderItem]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty array")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        for key in ("product_id", "quantity", "unit_price_cents"):
            if raw.get(key) is None:
                raise ValidationError(f"items[{index}].{key} is required")

        product_id = coerce_int(raw["product_id"], f"items[{index}].product_id")
        quantity = coerce_int(raw["quantity"], f"items[{index}].quantity")
        unit_price = validate_money(
            coerce_int(raw["unit_price_cents"], f"items[{index}].unit_price_cents"),
            f"items[{index}].unit_price_cents",
        )
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")
        if db.session.get(Product, product_id) is None:
            raise NotFoundError(f"Product {product_id} not found")

        notes = raw.get("notes")
        items.append(PurchaseOrderItem(
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=unit_price,
            total_price_cents=quantity * unit_price,
            received_qty=0,
            notes=str(notes).strip() if notes is not None else None,
        ))
    return items


def _recompute_totals(po: PurchaseOrder) -> None:
    po.subtotal_cents = sum(item.total_price_cents for item in po.items)
    po.total_amount_cents = po.subtotal_cents + (po.tax_amount_cents or 0) + (po.shipping_amount_cents or 0)


def list_purchase_orders(
    *,
    supplier_id: int | None = None,
    status: str | None = None,
    limit: int,
    offset: int,
) -> dict:
    query = db.session.query(PurchaseOrder)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    if status:
        if status not in STATUSES:
            raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
        query = query.filter(PurchaseOrder.status == status)
    query = query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
    return paginate(query, limit=limit, offset=offset, serialize=_summary)


def _summary(po: PurchaseOrder) -> dict:
    data = po.to_dict(include_items=False)
    data["supplier"] = {"id": po.supplier.id, "code": po.supplier.code, "name": po.supplier.name}
    return data


def get_purchase_order(po_id: int) -> PurchaseOrder:
    return get_or_404(PurchaseOrder, po_id, "Purchase order")


def create_purchase_order(payload: dict, *, identity: Identity | None) -> PurchaseOrder:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    header = {k: v for k, v in payload.items() if k != "items"}
    patch = validate_payload(model=PurchaseOrder, payload=header, policy=CREATE_POLICY, partial=False)

    if db.session.get(Supplier, patch["supplier_id"]) is None:
        raise NotFoundError("Supplier not found")
    items = _build_items(payload.get("items"))

    if patch.get("order_number"):
        ensure_unique(PurchaseOrder, "order_number", patch["order_number"], label="Order number")
    else:
        patch["order_number"] = generate_order_number("PO", PurchaseOrder)

    po = PurchaseOrder(status="DRAFT", **patch)
    po.tax_amount_cents = po.tax_amount_cents or 0
    po.shipping_amount_cents = po.shipping_amount_cents or 0
    po.items = items
    _recompute_totals(po)

    db.session.add(po)
    flush_or_conflict("Purchase order with this order number already exists")
    audit_service.record(identity, "CREATE", "PurchaseOrder", po.id, {"after": po.to_dict()})
    commit_or_conflict("Purchase order with this order number already exists")
    return po


def update_purchase_order(po_id: int, payload: dict, *, identity: Identity | None) -> PurchaseOrder:
    po = get_or_404(PurchaseOrder, po_id, "Purchase order")
    if po.status not in EDITABLE_STATUSES:
        raise InvalidStateError(
            f"Cannot update purchase order with status {po.status}",
            current=po.status,
        )
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    header = {k: v for k, v in payload.items() if k != "items"}
    patch = validate_payload(model=PurchaseOrder, payload=header, policy=UPDATE_POLICY, partial=True)
    new_items = _build_items(payload["items"]) if "items" in payload else None

    before = po.to_dict()

    if "status" in patch:
        _apply_status(po, patch.pop("status"))
    for key, value in patch.items():
        setattr(po, key, value)

    if new_items is not None:
        po.items = new_items
    _recompute_totals(po)

    db.session.flush()
    audit_service.record(identity, "UPDATE", "PurchaseOrder", po.id, {"before": before, "after": po.to_dict()})
    db.session.commit()
    return po


def cancel_purchase_order(po_id: int, *, identity: Identity | None) -> PurchaseOrder:
    po = get_or_404(PurchaseOrder, po_id, "Purchase order")
    previous = po.status
    _apply_status(po, "CANCELLED")
    audit_service.record(identity, "UPDATE", "PurchaseOrder", po.id, {"status": [previous, po.status]})
    db.session.commit()
    return po


def delete_purchase_order(po_id: int, *, identity: Identity | None) -> dict:
    po = get_or_404(PurchaseOrder, po_id, "Purchase order")
    if po.status != "DRAFT":
        raise InvalidStateError(
            f"Cannot delete purchase order with status {po.status}. Only DRAFT orders can be deleted.",
            current=po.status,
        )
    snapshot = po.to_dict()
    db.session.delete(po)
    audit_service.record(identity, "DELETE", "PurchaseOrder", po_id, {"before": snapshot})
    db.session.commit()
    return {"id": po_id, "deleted": True, "soft_deleted": False}


def _requested_quantities(po: PurchaseOrder, raw_items) -> list[tuple[PurchaseOrderItem, int]]:
    """Pair each requested receipt with its line; default is everything outstanding."""
    if raw_items is None:
        return [(item, item.remaining_qty) for item in po.items]
    if not isinstance(raw_items, list):
        raise ValidationError("items must be an array")

    lines = {item.id: item for item in po.items}
    requested = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("item_id") is None or raw.get("received_qty") is None:
            raise ValidationError(f"items[{index}] requires item_id and received_qty")
        item_id = coerce_int(raw["item_id"], f"items[{index}].item_id")
        qty = coerce_int(raw["received_qty"], f"items[{index}].received_qty")
        if qty < 0:
            raise ValidationError(f"items[{index}].received_qty must be >= 0")
        line = lines.get(item_id)
        if line is None:
            raise ValidationError(f"Item {item_id} does not belong to this purchase order")
        requested.append((line, qty))
    return requested


def _increment_stock(product_id: int, warehouse_id: int, qty: int) -> StockItem:
    stock = lock_for_update(
        db.session.query(StockItem).filter_by(product_id=product_id, warehouse_id=warehouse_id)
    ).first()
    if stock is None:
        stock = StockItem(product_id=product_id, warehouse_id=warehouse_id)
        stock.set_levels(0, 0)
        db.session.add(stock)
    stock.set_levels(stock.quantity + qty, stock.reserved_qty)
    return stock


def receive_purchase_order(po_id: int, payload: dict, *, identity: Identity | None) -> PurchaseOrder:
    """
    Receive goods into one warehouse.

    payload: {"warehouse_id": int, "items": [{"item_id": int, "received_qty": int}, ...]?}
    Omitting items receives everything still outstanding.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if payload.get("warehouse_id") is None:
        raise ValidationError("warehouse_id is required")
    warehouse_id = coerce_int(payload["warehouse_id"], "warehouse_id")

    with atomic():
        po = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=po_id)).first()
        if po is None:
            raise NotFoundError("Purchase order not found")
        if db.session.get(Warehouse, warehouse_id) is None:
            raise NotFoundError("Warehouse not found")
        if po.status not in RECEIVABLE_STATUSES:
            raise InvalidStateError(
                f"Cannot receive items for purchase order with status {po.status}",
                current=po.status,
            )

        received = []
        for line, requested in _requested_quantities(po, payload.get("items")):
            qty = min(requested, line.remaining_qty)
            if qty <= 0:
                continue
            line.received_qty = (line.received_qty or 0) + qty
            _increment_stock(line.product_id, warehouse_id, qty)
            received.append({"item_id": line.id, "product_id": line.product_id, "received_qty": qty})

        previous = po.status
        if all(item.received_qty >= item.quantity for item in po.items):
            po.status = "RECEIVED"
            po.received_at = utcnow()
        elif any(item.received_qty > 0 for item in po.items):
            po.status = "PARTIAL"

        db.session.flush()
        if received:
            audit_service.record(identity, "UPDATE", "PurchaseOrder", po.id, {
                "status": [previous, po.status],
                "warehouse_id": warehouse_id,
                "received": received,
            })
    return po
