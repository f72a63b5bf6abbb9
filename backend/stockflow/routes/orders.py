# Overview: Flask API routes for sales orders.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import order_service
from .params import int_arg, json_body, page_args


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    limit, offset = page_args(default=50, maximum=100)
    return jsonify(order_service.list_orders(
        customer_id=int_arg("customer_id"),
        status=request.args.get("status"),
        limit=limit,
        offset=offset,
    ))


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    order = order_service.get_order(order_id)
    data = order.to_dict()
    data["customer"] = order.customer.to_dict()
    return jsonify({"data": data})


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Request body:
    {
        "customer_id": 1,                                   // required
        "items": [                                          // required, non-empty
            {"product_id": 7, "quantity": 2,
             "unit_price_cents": 1000,                      // optional, defaults to product price
             "discount_cents": 0}
        ],
        "discount_amount_cents": 0, "shipping_amount_cents": 0,
        "shipping_address": "...", "billing_address": "...", "notes": "..."
    }
    """
    order = order_service.create_order(json_body(), identity=g.identity)
    return jsonify({"data": order.to_dict()}), 201


@orders_bp.put("/<int:order_id>")
@require_auth
def update_order_route(order_id: int):
    """status, notes and addresses only; lines are immutable."""
    order = order_service.update_order(order_id, json_body(), identity=g.identity)
    return jsonify({"data": order.to_dict()})


@orders_bp.delete("/<int:order_id>")
@require_auth
def delete_order_route(order_id: int):
    return jsonify({"data": order_service.delete_order(order_id, identity=g.identity)})
