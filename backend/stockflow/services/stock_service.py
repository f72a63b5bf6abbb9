# Overview: Stock ledger operations; quantity, reservation and availability per product and warehouse.

"""
Stock Service

INVARIANTS (hold after every committed write):
- quantity >= 0 and reserved_qty >= 0
- reserved_qty <= quantity
- available_qty == quantity - reserved_qty

WRITE MODES for set_stock:
- absolute: quantity given, new quantity = max(0, quantity)
- relative: adjustment given, new quantity = max(0, current + adjustment)
- reserved-only: only reserved_qty given, quantity unchanged
Supplying both quantity and adjustment is rejected as ambiguous.

Rows are created lazily: reading a missing (product, warehouse) pair returns
a zero record, and the first write inserts the row.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..concurrency import atomic, lock_for_update
from ..extensions import db
from ..errors import NotFoundError, ServiceError, ValidationError
from ..identity import Identity
from ..models import Product, StockItem, Warehouse
from ..validation import MAX_INT, coerce_bool, coerce_int
from . import audit_service
from stockflow.time_utils import utcnow


def get_stock(product_id: int, warehouse_id: int) -> dict:
    """Stock for one pair; a zero record (id None) when no row exists yet."""
    stock = (
        db.session.query(StockItem)
        .filter_by(product_id=product_id, warehouse_id=warehouse_id)
        .first()
    )
    if stock is None:
        return {
            "id": None,
            "product_id": product_id,
            "warehouse_id": warehouse_id,
            "quantity": 0,
            "reserved_qty": 0,
            "available_qty": 0,
            "last_count_at": None,
        }
    return stock.to_dict()


def _optional_int(value, name: str) -> int | None:
    if value is None:
        return None
    return coerce_int(value, name)


def apply_stock_change(
    product_id: int,
    warehouse_id: int,
    *,
    quantity=None,
    adjustment=None,
    reserved_qty=None,
    is_count: bool = False,
    identity: Identity | None = None,
) -> StockItem:
    """
    Validate and stage one stock write in the current transaction.

    Does not commit; callers wrap it in atomic() or a savepoint.
    """
    quantity = _optional_int(quantity, "quantity")
    adjustment = _optional_int(adjustment, "adjustment")
    reserved_qty = _optional_int(reserved_qty, "reserved_qty")

    if quantity is None and adjustment is None and reserved_qty is None:
        raise ValidationError("quantity, adjustment or reserved_qty is required")
    if quantity is not None and adjustment is not None:
        raise ValidationError("Provide either quantity or adjustment, not both")
    if reserved_qty is not None and reserved_qty < 0:
        raise ValidationError("reserved_qty must be >= 0")

    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")
    if db.session.get(Warehouse, warehouse_id) is None:
        raise NotFoundError("Warehouse not found")

    stock = lock_for_update(
        db.session.query(StockItem).filter_by(product_id=product_id, warehouse_id=warehouse_id)
    ).first()

    current_qty = stock.quantity if stock else 0
    current_reserved = stock.reserved_qty if stock else 0

    if quantity is not None:
        new_qty = max(0, quantity)
    elif adjustment is not None:
        new_qty = max(0, current_qty + adjustment)
        if new_qty > MAX_INT:
            raise ValidationError("adjustment would exceed the maximum stock quantity")
    else:
        new_qty = current_qty
    new_reserved = reserved_qty if reserved_qty is not None else current_reserved

    if new_reserved > new_qty:
        raise ValidationError(
            "Reserved quantity cannot exceed total quantity",
            {"quantity": new_qty, "reserved_qty": new_reserved},
        )

    created = stock is None
    before = None if created else {"quantity": current_qty, "reserved_qty": current_reserved}
    if created:
        stock = StockItem(product_id=product_id, warehouse_id=warehouse_id)
        db.session.add(stock)

    stock.set_levels(new_qty, new_reserved)
    if is_count:
        stock.last_count_at = utcnow()
    db.session.flush()

    audit_service.record(
        identity,
        "CREATE" if created else "UPDATE",
        "StockItem",
        stock.id,
        {
            "product_id": product_id,
            "warehouse_id": warehouse_id,
            "before": before,
            "after": {"quantity": new_qty, "reserved_qty": new_reserved},
            "adjustment": adjustment,
            "is_count": is_count,
        },
    )
    return stock


def set_stock(product_id: int, warehouse_id: int, payload: dict, *, identity: Identity | None) -> StockItem:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    with atomic():
        stock = apply_stock_change(
            product_id,
            warehouse_id,
            quantity=payload.get("quantity"),
            adjustment=payload.get("adjustment"),
            reserved_qty=payload.get("reserved_qty"),
            is_count=coerce_bool(payload.get("is_count", False), "is_count"),
            identity=identity,
        )
    return stock


def bulk_set_stock(items, *, identity: Identity | None) -> dict:
    """
    Apply many stock writes in one transaction.

    Each item runs in its own savepoint: a failing item is reported and
    rolled back alone, the successful ones commit together. Bulk writes are
    inventory counts unless an item says otherwise.
    """
    if not isinstance(items, list):
        raise ValidationError("items array is required")

    results = []
    with atomic():
        for item in items:
            if not isinstance(item, dict):
                results.append({"product_id": None, "warehouse_id": None, "success": False,
                                "error": "Each item must be an object"})
                continue

            product_id = item.get("product_id")
            warehouse_id = item.get("warehouse_id")
            if product_id is None or warehouse_id is None:
                results.append({"product_id": product_id, "warehouse_id": warehouse_id, "success": False,
                                "error": "product_id and warehouse_id are required"})
                continue

            try:
                with db.session.begin_nested():
                    apply_stock_change(
                        coerce_int(product_id, "product_id"),
                        coerce_int(warehouse_id, "warehouse_id"),
                        quantity=item.get("quantity"),
                        adjustment=item.get("adjustment"),
                        reserved_qty=item.get("reserved_qty"),
                        is_count=coerce_bool(item.get("is_count", True), "is_count"),
                        identity=identity,
                    )
            except ServiceError as e:
                results.append({"product_id": product_id, "warehouse_id": warehouse_id, "success": False,
                                "error": str(e)})
                continue
            except SQLAlchemyError:
                current_app.logger.exception(
                    "Bulk stock item failed for product %s warehouse %s", product_id, warehouse_id
                )
                results.append({"product_id": product_id, "warehouse_id": warehouse_id, "success": False,
                                "error": "Database error"})
                continue

            results.append({"product_id": product_id, "warehouse_id": warehouse_id, "success": True})

    succeeded = sum(1 for r in results if r["success"])
    return {
        "data": results,
        "summary": {
            "total": len(results),
            "success": succeeded,
            "failed": len(results) - succeeded,
        },
    }


def list_stock(
    *,
    warehouse_id: int | None = None,
    product_id: int | None = None,
    low_stock: bool = False,
    limit: int,
    offset: int,
) -> dict:
    """
    Paginated stock rows, most recently changed first, with totals over the
    whole filtered set. low_stock keeps rows at or below the product's
    min_stock_level.
    """
    query = db.session.query(StockItem).join(Product, StockItem.product_id == Product.id)
    if warehouse_id is not None:
        query = query.filter(StockItem.warehouse_id == warehouse_id)
    if product_id is not None:
        query = query.filter(StockItem.product_id == product_id)
    if low_stock:
        query = query.filter(StockItem.quantity <= Product.min_stock_level)

    totals = query.with_entities(
        db.func.count(StockItem.id),
        db.func.coalesce(db.func.sum(StockItem.quantity), 0),
        db.func.coalesce(db.func.sum(StockItem.reserved_qty), 0),
    ).one()

    rows = (
        query.order_by(StockItem.updated_at.desc(), StockItem.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    total = int(totals[0])
    return {
        "data": [_with_refs(row) for row in rows],
        "summary": {
            "total_items": total,
            "total_quantity": int(totals[1]),
            "total_reserved": int(totals[2]),
        },
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(rows) < total,
        },
    }


def _with_refs(stock: StockItem) -> dict:
    data = stock.to_dict()
    data["product"] = {
        "id": stock.product.id,
        "sku": stock.product.sku,
        "name": stock.product.name,
        "min_stock_level": stock.product.min_stock_level,
    }
    data["warehouse"] = {
        "id": stock.warehouse.id,
        "code": stock.warehouse.code,
        "name": stock.warehouse.name,
    }
    return data


def low_stock_report(*, warehouse_id: int | None = None) -> list[StockItem]:
    """Active products at or below min_stock_level, lowest first."""
    query = (
        db.session.query(StockItem)
        .join(Product, StockItem.product_id == Product.id)
        .filter(Product.is_active.is_(True))
        .filter(StockItem.quantity <= Product.min_stock_level)
    )
    if warehouse_id is not None:
        query = query.filter(StockItem.warehouse_id == warehouse_id)
    return query.order_by(StockItem.quantity.asc(), StockItem.id.asc()).all()
