# Overview: Flask API routes for the stock ledger.

"""
Stock Routes

- GET  /api/stock                              paginated rows + summary
- GET  /api/stock/<product_id>/<warehouse_id>  one pair (zero record if absent)
- PUT  /api/stock/<product_id>/<warehouse_id>  absolute / relative / reserved-only write
- POST /api/stock/bulk                         inventory count, per-item results
"""

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import stock_service
from .params import bool_arg, int_arg, json_body, page_args


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
@require_auth
def list_stock_route():
    """
    Query parameters:
    - warehouse_id, product_id
    - low_stock: true keeps rows at or below the product's min_stock_level
    - limit (default 100, max 500), offset
    """
    limit, offset = page_args(default=100, maximum=500)
    return jsonify(stock_service.list_stock(
        warehouse_id=int_arg("warehouse_id"),
        product_id=int_arg("product_id"),
        low_stock=bool_arg("low_stock") is True,
        limit=limit,
        offset=offset,
    ))


@stock_bp.get("/<int:product_id>/<int:warehouse_id>")
@require_auth
def get_stock_route(product_id: int, warehouse_id: int):
    return jsonify({"data": stock_service.get_stock(product_id, warehouse_id)})


@stock_bp.put("/<int:product_id>/<int:warehouse_id>")
@require_auth
def set_stock_route(product_id: int, warehouse_id: int):
    """
    Request body (one of quantity / adjustment, or reserved_qty alone):
    {
        "quantity": 40,        // absolute, clamped at 0
        "adjustment": -3,      // relative, result clamped at 0
        "reserved_qty": 5,     // must not exceed the resulting quantity
        "is_count": true       // stamps last_count_at
    }
    """
    stock = stock_service.set_stock(product_id, warehouse_id, json_body(), identity=g.identity)
    return jsonify({"data": stock.to_dict()})


@stock_bp.post("/bulk")
@require_auth
def bulk_set_stock_route():
    """
    Request body:
    {"items": [{"product_id": 1, "warehouse_id": 2, "quantity": 10, "reserved_qty": 0}, ...]}
    """
    body = json_body()
    return jsonify(stock_service.bulk_set_stock(body.get("items"), identity=g.identity))
