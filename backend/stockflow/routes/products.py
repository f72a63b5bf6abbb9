# Overview: Flask API routes for product operations; parses input and returns JSON responses.

"""
Product Routes

Listing is scoped to the caller's organization unless organization_id is
given explicitly.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import product_service, user_service
from .params import bool_arg, int_arg, json_body, page_args


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query parameters:
    - organization_id (default: caller's organization)
    - category_id, is_active
    - search: matches name, sku or barcode
    - limit (default 50, max 100), offset
    """
    limit, offset = page_args(default=50, maximum=100)
    organization_id = int_arg("organization_id")
    if organization_id is None:
        organization_id = user_service.current_organization_id(g.identity)

    return jsonify(product_service.list_products(
        organization_id=organization_id,
        category_id=int_arg("category_id"),
        is_active=bool_arg("is_active"),
        search=request.args.get("search"),
        limit=limit,
        offset=offset,
    ))


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    """Product plus its stock rows across warehouses."""
    return jsonify({"data": product_service.get_product(product_id)})


@products_bp.post("")
@require_auth
def create_product_route():
    """
    Request body:
    {
        "organization_id": 1,       // required
        "sku": "SKU-1",             // required, globally unique
        "name": "Widget",           // required
        "unit_price_cents": 1999,   // required
        "category_id": 3, "cost_price_cents": 950, "barcode": "...",
        "min_stock_level": 5, "max_stock_level": 100, "reorder_point": 10,
        "is_taxable": true
    }
    """
    product = product_service.create_product(json_body(), identity=g.identity)
    return jsonify({"data": product.to_dict()}), 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    product = product_service.update_product(product_id, json_body(), identity=g.identity)
    return jsonify({"data": product.to_dict()})


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    return jsonify({"data": product_service.delete_product(product_id, identity=g.identity)})
