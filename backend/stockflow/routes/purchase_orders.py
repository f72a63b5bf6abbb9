# Overview: Flask API routes for purchase orders; drafting, receiving and cancellation.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import purchase_order_service
from .params import int_arg, json_body, page_args


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
def list_purchase_orders_route():
    """
    Query parameters:
    - supplier_id, status
    - limit (default 50, max 100), offset
    """
    limit, offset = page_args(default=50, maximum=100)
    return jsonify(purchase_order_service.list_purchase_orders(
        supplier_id=int_arg("supplier_id"),
        status=request.args.get("status"),
        limit=limit,
        offset=offset,
    ))


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
def get_purchase_order_route(po_id: int):
    po = purchase_order_service.get_purchase_order(po_id)
    data = po.to_dict()
    data["supplier"] = po.supplier.to_dict()
    return jsonify({"data": data})


@purchase_orders_bp.post("")
@require_auth
def create_purchase_order_route():
    """
    Create a DRAFT purchase order.

    Request body:
    {
        "supplier_id": 1,                    // required
        "items": [                           // required, non-empty
            {"product_id": 7, "quantity": 10, "unit_price_cents": 500, "notes": "..."}
        ],
        "order_number": "PO-...",            // optional, generated when omitted
        "tax_amount_cents": 0,
        "shipping_amount_cents": 0,
        "expected_at": "2026-11-01T00:00:00Z",
        "notes": "..."
    }
    """
    po = purchase_order_service.create_purchase_order(json_body(), identity=g.identity)
    return jsonify({"data": po.to_dict()}), 201


@purchase_orders_bp.put("/<int:po_id>")
@require_auth
def update_purchase_order_route(po_id: int):
    """Only DRAFT or PENDING orders can be edited. items replaces every line."""
    po = purchase_order_service.update_purchase_order(po_id, json_body(), identity=g.identity)
    return jsonify({"data": po.to_dict()})


@purchase_orders_bp.delete("/<int:po_id>")
@require_auth
def delete_purchase_order_route(po_id: int):
    return jsonify({"data": purchase_order_service.delete_purchase_order(po_id, identity=g.identity)})


@purchase_orders_bp.post("/<int:po_id>/receive")
@require_auth
def receive_purchase_order_route(po_id: int):
    """
    Request body:
    {
        "warehouse_id": 2,                               // required
        "items": [{"item_id": 11, "received_qty": 4}]    // optional, default: all outstanding
    }
    """
    po = purchase_order_service.receive_purchase_order(po_id, json_body(), identity=g.identity)
    return jsonify({"data": po.to_dict()})


@purchase_orders_bp.post("/<int:po_id>/cancel")
@require_auth
def cancel_purchase_order_route(po_id: int):
    po = purchase_order_service.cancel_purchase_order(po_id, identity=g.identity)
    return jsonify({"data": po.to_dict()})
