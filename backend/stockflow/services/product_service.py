# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Product Service

DELETE RULES:
- Positive stock anywhere blocks deletion (DependencyExistsError).
- Referenced by any sales or purchase order line: soft delete (is_active=false)
  so historical documents keep resolving.
- Otherwise the product and its empty stock rows are removed.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import DependencyExistsError, NotFoundError
from ..identity import Identity
from ..models import Category, Organization, OrderItem, Product, PurchaseOrderItem, StockItem
from ..pagination import paginate
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service
from .crud import apply_patch, commit_or_conflict, flush_or_conflict, ensure_unique, get_or_404


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "organization_id", "category_id", "sku", "name", "description", "barcode",
        "unit_price_cents", "cost_price_cents", "min_stock_level", "max_stock_level",
        "reorder_point", "is_taxable", "is_active",
    }),
    required_on_create=frozenset({"organization_id", "sku", "name", "unit_price_cents"}),
    non_negative=frozenset({
        "unit_price_cents", "cost_price_cents", "min_stock_level", "max_stock_level", "reorder_point",
    }),
    money_fields=frozenset({"unit_price_cents", "cost_price_cents"}),
)


def list_products(
    *,
    organization_id: int | None = None,
    category_id: int | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    limit: int,
    offset: int,
) -> dict:
    query = db.session.query(Product)
    if organization_id is not None:
        query = query.filter(Product.organization_id == organization_id)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Product.name.ilike(term),
            Product.sku.ilike(term),
            Product.barcode.ilike(term),
        ))
    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, limit=limit, offset=offset)


def get_product(product_id: int) -> dict:
    product = get_or_404(Product, product_id, "Product")
    data = product.to_dict()
    stock_rows = db.session.query(StockItem).filter_by(product_id=product.id).order_by(StockItem.warehouse_id).all()
    data["stock"] = [row.to_dict() for row in stock_rows]
    data["total_quantity"] = sum(row.quantity for row in stock_rows)
    data["total_available"] = sum(row.available_qty for row in stock_rows)
    return data


def _check_references(patch: dict) -> None:
    if patch.get("organization_id") is not None and db.session.get(Organization, patch["organization_id"]) is None:
        raise NotFoundError("Organization not found")
    if patch.get("category_id") is not None and db.session.get(Category, patch["category_id"]) is None:
        raise NotFoundError("Category not found")


def create_product(payload: dict, *, identity: Identity | None) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    _check_references(patch)
    ensure_unique(Product, "sku", patch["sku"], label="Product SKU")

    product = Product(**patch)
    db.session.add(product)
    flush_or_conflict("Product with this SKU already exists")
    audit_service.record(identity, "CREATE", "Product", product.id, {"after": product.to_dict()})
    commit_or_conflict("Product with this SKU already exists")
    return product


def update_product(product_id: int, payload: dict, *, identity: Identity | None) -> Product:
    product = get_or_404(Product, product_id, "Product")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    _check_references(patch)
    if "sku" in patch:
        ensure_unique(Product, "sku", patch["sku"], label="Product SKU", exclude_id=product.id)

    diff = apply_patch(product, patch)
    if diff:
        audit_service.record(identity, "UPDATE", "Product", product.id, diff)
    commit_or_conflict("Another product with this SKU already exists")
    return product


def delete_product(product_id: int, *, identity: Identity | None) -> dict:
    product = get_or_404(Product, product_id, "Product")

    on_hand = (
        db.session.query(db.func.coalesce(db.func.sum(StockItem.quantity), 0))
        .filter(StockItem.product_id == product.id)
        .scalar()
    )
    if on_hand > 0:
        raise DependencyExistsError(
            "Cannot delete product with existing stock",
            {"quantity": int(on_hand)},
        )

    referenced = (
        db.session.query(OrderItem.id).filter_by(product_id=product.id).first() is not None
        or db.session.query(PurchaseOrderItem.id).filter_by(product_id=product.id).first() is not None
    )
    if referenced:
        product.is_active = False
        audit_service.record(identity, "DELETE", "Product", product.id, {"soft": True})
        db.session.commit()
        return {"id": product_id, "deleted": True, "soft_deleted": True}

    snapshot = product.to_dict()
    for row in db.session.query(StockItem).filter_by(product_id=product.id).all():
        db.session.delete(row)
    db.session.delete(product)
    audit_service.record(identity, "DELETE", "Product", product_id, {"before": snapshot})
    db.session.commit()
    return {"id": product_id, "deleted": True, "soft_deleted": False}
