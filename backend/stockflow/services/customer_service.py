# Overview: Service-layer operations for customers.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError
from ..identity import Identity
from ..models import Customer, Order, Organization
from ..pagination import paginate
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service
from .crud import apply_patch, commit_or_conflict, flush_or_conflict, ensure_unique, get_or_404


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "organization_id", "code", "name", "email", "phone", "address", "city", "state",
        "postal_code", "country", "tax_exempt", "credit_limit_cents", "balance_cents",
        "notes", "is_active",
    }),
    required_on_create=frozenset({"organization_id", "code", "name"}),
    non_negative=frozenset({"credit_limit_cents"}),
    money_fields=frozenset({"credit_limit_cents", "balance_cents"}),
)


def list_customers(
    *,
    organization_id: int | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    limit: int,
    offset: int,
) -> dict:
    query = db.session.query(Customer)
    if organization_id is not None:
        query = query.filter(Customer.organization_id == organization_id)
    if is_active is not None:
        query = query.filter(Customer.is_active.is_(is_active))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Customer.name.ilike(term),
            Customer.code.ilike(term),
            Customer.email.ilike(term),
        ))
    query = query.order_by(Customer.name.asc(), Customer.id.asc())
    return paginate(query, limit=limit, offset=offset)


def get_customer(customer_id: int) -> dict:
    customer = get_or_404(Customer, customer_id, "Customer")
    data = customer.to_dict()
    recent = (
        db.session.query(Order)
        .filter_by(customer_id=customer.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(10)
        .all()
    )
    data["recent_orders"] = [order.to_dict(include_items=False) for order in recent]
    return data


def create_customer(payload: dict, *, identity: Identity | None) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    if db.session.get(Organization, patch["organization_id"]) is None:
        raise NotFoundError("Organization not found")
    ensure_unique(Customer, "code", patch["code"], label="Customer code")

    customer = Customer(**patch)
    db.session.add(customer)
    flush_or_conflict("Customer with this code already exists")
    audit_service.record(identity, "CREATE", "Customer", customer.id, {"after": customer.to_dict()})
    commit_or_conflict("Customer with this code already exists")
    return customer


def update_customer(customer_id: int, payload: dict, *, identity: Identity | None) -> Customer:
    customer = get_or_404(Customer, customer_id, "Customer")
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    if "organization_id" in patch and db.session.get(Organization, patch["organization_id"]) is None:
        raise NotFoundError("Organization not found")
    if "code" in patch:
        ensure_unique(Customer, "code", patch["code"], label="Customer code", exclude_id=customer.id)

    diff = apply_patch(customer, patch)
    if diff:
        audit_service.record(identity, "UPDATE", "Customer", customer.id, diff)
    commit_or_conflict("Another customer with this code already exists")
    return customer


def delete_customer(customer_id: int, *, identity: Identity | None) -> dict:
    """Soft delete when orders reference the customer."""
    customer = get_or_404(Customer, customer_id, "Customer")

    orders = db.session.query(Order).filter_by(customer_id=customer.id).count()
    if orders:
        customer.is_active = False
        audit_service.record(identity, "DELETE", "Customer", customer.id, {"soft": True, "orders": orders})
        db.session.commit()
        return {"id": customer_id, "deleted": True, "soft_deleted": True}

    snapshot = customer.to_dict()
    db.session.delete(customer)
    audit_service.record(identity, "DELETE", "Customer", customer_id, {"before": snapshot})
    db.session.commit()
    return {"id": customer_id, "deleted": True, "soft_deleted": False}
