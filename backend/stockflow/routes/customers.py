# Overview: Flask API routes for customer operations.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import customer_service, user_service
from .params import bool_arg, int_arg, json_body, page_args


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    """organization_id defaults to the caller's organization."""
    limit, offset = page_args(default=50, maximum=100)
    organization_id = int_arg("organization_id")
    if organization_id is None:
        organization_id = user_service.current_organization_id(g.identity)

    return jsonify(customer_service.list_customers(
        organization_id=organization_id,
        is_active=bool_arg("is_active"),
        search=request.args.get("search"),
        limit=limit,
        offset=offset,
    ))


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    return jsonify({"data": customer_service.get_customer(customer_id)})


@customers_bp.post("")
@require_auth
def create_customer_route():
    customer = customer_service.create_customer(json_body(), identity=g.identity)
    return jsonify({"data": customer.to_dict()}), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    customer = customer_service.update_customer(customer_id, json_body(), identity=g.identity)
    return jsonify({"data": customer.to_dict()})


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer_route(customer_id: int):
    return jsonify({"data": customer_service.delete_customer(customer_id, identity=g.identity)})
