# Overview: Service-layer operations for warehouses.

"""
Warehouse Service

INVARIANTS:
- At most one default warehouse per organization. Promoting a warehouse to
  default clears the flag on the previous default in the same transaction.
- The default warehouse cannot be deleted; promote another one first.
- Warehouses holding stock cannot be deleted. Empty stock rows are removed
  together with the warehouse.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import DependencyExistsError, InvalidStateError, NotFoundError
from ..identity import Identity
from ..models import Organization, StockItem, Warehouse
from ..pagination import paginate
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service
from .crud import apply_patch, commit_or_conflict, flush_or_conflict, ensure_unique, get_or_404


WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "organization_id", "code", "name", "description", "address", "city", "state",
        "postal_code", "country", "is_default", "is_active",
    }),
    required_on_create=frozenset({"organization_id", "code", "name"}),
)


def list_warehouses(
    *,
    organization_id: int | None = None,
    is_active: bool | None = None,
    limit: int,
    offset: int,
) -> dict:
    query = db.session.query(Warehouse)
    if organization_id is not None:
        query = query.filter(Warehouse.organization_id == organization_id)
    if is_active is not None:
        query = query.filter(Warehouse.is_active.is_(is_active))
    query = query.order_by(Warehouse.is_default.desc(), Warehouse.name.asc(), Warehouse.id.asc())
    return paginate(query, limit=limit, offset=offset)


def get_warehouse(warehouse_id: int) -> dict:
    warehouse = get_or_404(Warehouse, warehouse_id, "Warehouse")
    data = warehouse.to_dict()
    totals = (
        db.session.query(
            db.func.count(StockItem.id),
            db.func.coalesce(db.func.sum(StockItem.quantity), 0),
            db.func.coalesce(db.func.sum(StockItem.reserved_qty), 0),
        )
        .filter(StockItem.warehouse_id == warehouse.id)
        .one()
    )
    data["stock_summary"] = {
        "total_items": int(totals[0]),
        "total_quantity": int(totals[1]),
        "total_reserved": int(totals[2]),
    }
    return data


def _clear_other_defaults(organization_id: int, keep_id: int | None) -> None:
    query = db.session.query(Warehouse).filter(
        Warehouse.organization_id == organization_id,
        Warehouse.is_default.is_(True),
    )
    if keep_id is not None:
        query = query.filter(Warehouse.id != keep_id)
    for other in query.all():
        other.is_default = False


def create_warehouse(payload: dict, *, identity: Identity | None) -> Warehouse:
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
    if db.session.get(Organization, patch["organization_id"]) is None:
        raise NotFoundError("Organization not found")
    ensure_unique(Warehouse, "code", patch["code"], label="Warehouse code")

    if patch.get("is_default"):
        _clear_other_defaults(patch["organization_id"], keep_id=None)

    warehouse = Warehouse(**patch)
    db.session.add(warehouse)
    flush_or_conflict("Warehouse with this code already exists")
    audit_service.record(identity, "CREATE", "Warehouse", warehouse.id, {"after": warehouse.to_dict()})
    commit_or_conflict("Warehouse with this code already exists")
    return warehouse


def update_warehouse(warehouse_id: int, payload: dict, *, identity: Identity | None) -> Warehouse:
    warehouse = get_or_404(Warehouse, warehouse_id, "Warehouse")
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=True)
    if "organization_id" in patch and db.session.get(Organization, patch["organization_id"]) is None:
        raise NotFoundError("Organization not found")
    if "code" in patch:
        ensure_unique(Warehouse, "code", patch["code"], label="Warehouse code", exclude_id=warehouse.id)

    if patch.get("is_default"):
        _clear_other_defaults(patch.get("organization_id", warehouse.organization_id), keep_id=warehouse.id)

    diff = apply_patch(warehouse, patch)
    if diff:
        audit_service.record(identity, "UPDATE", "Warehouse", warehouse.id, diff)
    commit_or_conflict("Another warehouse with this code already exists")
    return warehouse


def delete_warehouse(warehouse_id: int, *, identity: Identity | None) -> dict:
    warehouse = get_or_404(Warehouse, warehouse_id, "Warehouse")

    if warehouse.is_default:
        raise InvalidStateError("Cannot delete the default warehouse")

    rows = db.session.query(StockItem).filter_by(warehouse_id=warehouse.id).all()
    on_hand = sum(row.quantity for row in rows)
    if on_hand > 0:
        raise DependencyExistsError(
            "Cannot delete warehouse with existing stock",
            {"quantity": on_hand},
        )

    snapshot = warehouse.to_dict()
    for row in rows:
        db.session.delete(row)
    db.session.delete(warehouse)
    audit_service.record(identity, "DELETE", "Warehouse", warehouse_id, {"before": snapshot})
    db.session.commit()
    return {"id": warehouse_id, "deleted": True, "soft_deleted": False}
