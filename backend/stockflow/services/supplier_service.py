# Overview: Service-layer operations for suppliers.

from __future__ import annotations

from ..extensions import db
from ..identity import Identity
from ..models import PurchaseOrder, Supplier
from ..pagination import paginate
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service
from .crud import apply_patch, commit_or_conflict, flush_or_conflict, ensure_unique, get_or_404


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "code", "name", "contact_name", "email", "phone", "address", "city", "state",
        "postal_code", "country", "website", "payment_terms", "notes", "is_active",
    }),
    required_on_create=frozenset({"code", "name"}),
)


def _normalize_code(patch: dict) -> None:
    if patch.get("code"):
        patch["code"] = patch["code"].upper()


def list_suppliers(*, is_active: bool | None = None, search: str | None = None, limit: int, offset: int) -> dict:
    query = db.session.query(Supplier)
    if is_active is not None:
        query = query.filter(Supplier.is_active.is_(is_active))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Supplier.name.ilike(term),
            Supplier.code.ilike(term),
            Supplier.email.ilike(term),
        ))
    query = query.order_by(Supplier.name.asc(), Supplier.id.asc())
    return paginate(query, limit=limit, offset=offset)


def get_supplier(supplier_id: int) -> dict:
    supplier = get_or_404(Supplier, supplier_id, "Supplier")
    data = supplier.to_dict()
    recent = (
        db.session.query(PurchaseOrder)
        .filter_by(supplier_id=supplier.id)
        .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        .limit(10)
        .all()
    )
    data["recent_purchase_orders"] = [po.to_dict(include_items=False) for po in recent]
    return data


def create_supplier(payload: dict, *, identity: Identity | None) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    _normalize_code(patch)
    ensure_unique(Supplier, "code", patch["code"], label="Supplier code")

    supplier = Supplier(**patch)
    db.session.add(supplier)
    flush_or_conflict("Supplier with this code already exists")
    audit_service.record(identity, "CREATE", "Supplier", supplier.id, {"after": supplier.to_dict()})
    commit_or_conflict("Supplier with this code already exists")
    return supplier


def update_supplier(supplier_id: int, payload: dict, *, identity: Identity | None) -> Supplier:
    supplier = get_or_404(Supplier, supplier_id, "Supplier")
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    _normalize_code(patch)
    if "code" in patch:
        ensure_unique(Supplier, "code", patch["code"], label="Supplier code", exclude_id=supplier.id)

    diff = apply_patch(supplier, patch)
    if diff:
        audit_service.record(identity, "UPDATE", "Supplier", supplier.id, diff)
    commit_or_conflict("Another supplier with this code already exists")
    return supplier


def delete_supplier(supplier_id: int, *, identity: Identity | None) -> dict:
    """Soft delete when purchase orders reference the supplier."""
    supplier = get_or_404(Supplier, supplier_id, "Supplier")

    orders = db.session.query(PurchaseOrder).filter_by(supplier_id=supplier.id).count()
    if orders:
        supplier.is_active = False
        audit_service.record(identity, "DELETE", "Supplier", supplier.id, {"soft": True, "purchase_orders": orders})
        db.session.commit()
        return {"id": supplier_id, "deleted": True, "soft_deleted": True}

    snapshot = supplier.to_dict()
    db.session.delete(supplier)
    audit_service.record(identity, "DELETE", "Supplier", supplier_id, {"before": snapshot})
    db.session.commit()
    return {"id": supplier_id, "deleted": True, "soft_deleted": False}
