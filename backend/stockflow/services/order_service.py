# Overview: Sales order workflow; pricing at creation and status transitions.

"""
Sales Order Service

PRICING (fixed at creation, integer cents):
- unit price defaults to the product's current unit_price_cents
- line_total = quantity * unit_price - discount   (discount <= quantity * unit_price)
- line tax = round_half_up(line_total * SALES_TAX_RATE_BPS / 10000) when the
  product is taxable and the customer is not tax exempt, else 0
- line total_price = line_total + line tax
- order subtotal = sum(line_total), tax = sum(line tax)
- order total = subtotal - discount_amount + tax + shipping_amount

LIFECYCLE (see TRANSITIONS):
    PENDING -> CONFIRMED -> PROCESSING -> SHIPPED -> DELIVERED -> REFUNDED
    PENDING / CONFIRMED / PROCESSING -> CANCELLED
Lines are immutable after creation. Stock is not reserved or consumed here.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InvalidStateError, InvalidTransitionError, NotFoundError, ValidationError
from ..identity import Identity
from ..models import Customer, Order, OrderItem, Product
from ..pagination import paginate
from ..validation import ModelValidationPolicy, coerce_int, validate_money, validate_payload
from . import audit_service
from .crud import commit_or_conflict, flush_or_conflict, ensure_unique, get_or_404
from .numbering import generate_order_number
from stockflow.time_utils import utcnow


STATUSES = ("PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED", "REFUNDED")

TRANSITIONS = {
    "PENDING": {"CONFIRMED", "CANCELLED"},
    "CONFIRMED": {"PROCESSING", "CANCELLED"},
    "PROCESSING": {"SHIPPED", "CANCELLED"},
    "SHIPPED": {"DELIVERED"},
    "DELIVERED": {"REFUNDED"},
    "CANCELLED": set(),
    "REFUNDED": set(),
}

CREATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "customer_id", "order_number", "discount_amount_cents", "shipping_amount_cents",
        "notes", "shipping_address", "billing_address",
    }),
    required_on_create=frozenset({"customer_id"}),
    non_negative=frozenset({"discount_amount_cents", "shipping_amount_cents"}),
    money_fields=frozenset({"discount_amount_cents", "shipping_amount_cents"}),
)

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"status", "notes", "shipping_address", "billing_address"}),
)


def round_half_up_div(numerator: int, denominator: int) -> int:
    """Integer division rounding halves away from zero (numerator >= 0)."""
    return (numerator * 2 + denominator) // (denominator * 2)


def line_tax_cents(line_total: int, rate_bps: int) -> int:
    return round_half_up_div(line_total * rate_bps, 10_000)


def can_transition(current: str, target: str) -> bool:
    return target == current or target in TRANSITIONS.get(current, set())


def _price_items(raw_items, customer: Customer, rate_bps: int) -> list[OrderItem]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty array")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("product_id") is None or raw.get("quantity") is None:
            raise ValidationError(f"items[{index}] requires product_id and quantity")

        product_id = coerce_int(raw["product_id"], f"items[{index}].product_id")
        quantity = coerce_int(raw["quantity"], f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")

        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        if raw.get("unit_price_cents") is None:
            unit_price = product.unit_price_cents
        else:
            unit_price = validate_money(
                coerce_int(raw["unit_price_cents"], f"items[{index}].unit_price_cents"),
                f"items[{index}].unit_price_cents",
            )
        discount = 0
        if raw.get("discount_cents") is not None:
            discount = validate_money(
                coerce_int(raw["discount_cents"], f"items[{index}].discount_cents"),
                f"items[{index}].discount_cents",
            )

        gross = quantity * unit_price
        if discount > gross:
            raise ValidationError(f"items[{index}].discount_cents cannot exceed the line amount ({gross})")
        line_total = gross - discount

        taxable = product.is_taxable and not customer.tax_exempt
        tax = line_tax_cents(line_total, rate_bps) if taxable else 0

        notes = raw.get("notes")
        items.append(OrderItem(
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=unit_price,
            discount_cents=discount,
            tax_amount_cents=tax,
            total_price_cents=line_total + tax,
            notes=str(notes).strip() if notes is not None else None,
        ))
    return items


def list_orders(
    *,
    customer_id: int | None = None,
    status: str | None = None,
    limit: int,
    offset: int,
) -> dict:
    query = db.session.query(Order)
    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)
    if status:
        if status not in STATUSES:
            raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
        query = query.filter(Order.status == status)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(query, limit=limit, offset=offset, serialize=_summary)


def _summary(order: Order) -> dict:
    data = order.to_dict(include_items=False)
    data["customer"] = {"id": order.customer.id, "code": order.customer.code, "name": order.customer.name}
    return data


def get_order(order_id: int) -> Order:
    return get_or_404(Order, order_id, "Order")


def create_order(payload: dict, *, identity: Identity | None) -> Order:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    header = {k: v for k, v in payload.items() if k != "items"}
    patch = validate_payload(model=Order, payload=header, policy=CREATE_POLICY, partial=False)

    customer = db.session.get(Customer, patch["customer_id"])
    if customer is None:
        raise NotFoundError("Customer not found")

    rate_bps = current_app.config["SALES_TAX_RATE_BPS"]
    items = _price_items(payload.get("items"), customer, rate_bps)

    if patch.get("order_number"):
        ensure_unique(Order, "order_number", patch["order_number"], label="Order number")
    else:
        patch["order_number"] = generate_order_number("SO", Order)

    subtotal = sum(item.total_price_cents - item.tax_amount_cents for item in items)
    tax = sum(item.tax_amount_cents for item in items)
    discount = patch.pop("discount_amount_cents", None) or 0
    shipping = patch.pop("shipping_amount_cents", None) or 0
    total = subtotal - discount + tax + shipping
    if total < 0:
        raise ValidationError("discount_amount_cents cannot exceed the order amount")

    order = Order(
        status="PENDING",
        subtotal_cents=subtotal,
        tax_amount_cents=tax,
        discount_amount_cents=discount,
        shipping_amount_cents=shipping,
        total_amount_cents=total,
        **patch,
    )
    order.items = items

    db.session.add(order)
    flush_or_conflict("Order with this order number already exists")
    audit_service.record(identity, "CREATE", "Order", order.id, {"after": order.to_dict()})
    commit_or_conflict("Order with this order number already exists")
    return order


def update_order(order_id: int, payload: dict, *, identity: Identity | None) -> Order:
    order = get_or_404(Order, order_id, "Order")
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if "items" in payload:
        raise ValidationError("Order lines cannot be changed after creation")

    patch = validate_payload(model=Order, payload=payload, policy=UPDATE_POLICY, partial=True)
    diff = {}

    target = patch.pop("status", None)
    if target is not None and target != order.status:
        if target not in STATUSES:
            raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
        if not can_transition(order.status, target):
            raise InvalidTransitionError(order.status, target)
        now = utcnow()
        if target == "SHIPPED":
            order.shipped_at = now
        elif target == "DELIVERED":
            order.delivered_at = now
        elif target == "CANCELLED":
            order.cancelled_at = now
        diff["status"] = [order.status, target]
        order.status = target

    for key, value in patch.items():
        if getattr(order, key) != value:
            diff[key] = [getattr(order, key), value]
            setattr(order, key, value)

    if diff:
        audit_service.record(identity, "UPDATE", "Order", order.id, diff)
    db.session.commit()
    return order


def delete_order(order_id: int, *, identity: Identity | None) -> dict:
    order = get_or_404(Order, order_id, "Order")
    if order.status != "PENDING":
        raise InvalidStateError(
            f"Cannot delete order with status {order.status}. Only PENDING orders can be deleted.",
            current=order.status,
        )
    snapshot = order.to_dict()
    db.session.delete(order)
    audit_service.record(identity, "DELETE", "Order", order_id, {"before": snapshot})
    db.session.commit()
    return {"id": order_id, "deleted": True, "soft_deleted": False}
