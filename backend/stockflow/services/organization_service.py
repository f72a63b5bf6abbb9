# Overview: Service-layer operations for organizations (tenants).

from __future__ import annotations

from ..extensions import db
from ..identity import Identity
from ..models import Customer, Organization, Product, User, Warehouse
from ..pagination import paginate
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service
from .crud import apply_patch, commit_or_conflict, flush_or_conflict, ensure_unique, get_or_404, slugify


ORGANIZATION_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "slug", "description", "website", "is_active"}),
    required_on_create=frozenset({"name"}),
)


def list_organizations(*, is_active: bool | None = None, limit: int, offset: int) -> dict:
    query = db.session.query(Organization)
    if is_active is not None:
        query = query.filter(Organization.is_active.is_(is_active))
    query = query.order_by(Organization.name.asc(), Organization.id.asc())
    return paginate(query, limit=limit, offset=offset, serialize=_with_counts)


def _with_counts(org: Organization) -> dict:
    data = org.to_dict()
    data["counts"] = _dependent_counts(org.id)
    return data


def _dependent_counts(org_id: int) -> dict:
    return {
        "users": db.session.query(User).filter_by(organization_id=org_id).count(),
        "products": db.session.query(Product).filter_by(organization_id=org_id).count(),
        "warehouses": db.session.query(Warehouse).filter_by(organization_id=org_id).count(),
        "customers": db.session.query(Customer).filter_by(organization_id=org_id).count(),
    }


def get_organization(org_id: int) -> dict:
    org = get_or_404(Organization, org_id, "Organization")
    return _with_counts(org)


def create_organization(payload: dict, *, identity: Identity | None) -> Organization:
    patch = validate_payload(model=Organization, payload=payload, policy=ORGANIZATION_POLICY, partial=False)
    patch["slug"] = slugify(patch.get("slug") or patch["name"])
    ensure_unique(Organization, "slug", patch["slug"], label="Organization slug")

    org = Organization(**patch)
    db.session.add(org)
    flush_or_conflict("Organization with this slug already exists")
    audit_service.record(identity, "CREATE", "Organization", org.id, {"after": org.to_dict()})
    commit_or_conflict("Organization with this slug already exists")
    return org


def update_organization(org_id: int, payload: dict, *, identity: Identity | None) -> Organization:
    org = get_or_404(Organization, org_id, "Organization")
    patch = validate_payload(model=Organization, payload=payload, policy=ORGANIZATION_POLICY, partial=True)
    if "slug" in patch:
        patch["slug"] = slugify(patch["slug"])
        ensure_unique(Organization, "slug", patch["slug"], label="Organization slug", exclude_id=org.id)

    diff = apply_patch(org, patch)
    if diff:
        audit_service.record(identity, "UPDATE", "Organization", org.id, diff)
    commit_or_conflict("Organization with this slug already exists")
    return org


def delete_organization(org_id: int, *, identity: Identity | None) -> dict:
    """Soft delete while any user, product, warehouse or customer references the organization."""
    org = get_or_404(Organization, org_id, "Organization")
    counts = _dependent_counts(org.id)

    if any(counts.values()):
        org.is_active = False
        audit_service.record(identity, "DELETE", "Organization", org.id, {"soft": True, "counts": counts})
        db.session.commit()
        return {"id": org_id, "deleted": True, "soft_deleted": True}

    snapshot = org.to_dict()
    db.session.delete(org)
    audit_service.record(identity, "DELETE", "Organization", org_id, {"before": snapshot})
    db.session.commit()
    return {"id": org_id, "deleted": True, "soft_deleted": False}
