# Overview: Flask API routes for warehouse operations.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import user_service, warehouse_service
from .params import bool_arg, int_arg, json_body, page_args


warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")


@warehouses_bp.get("")
@require_auth
def list_warehouses_route():
    """Default warehouse first. organization_id defaults to the caller's organization."""
    limit, offset = page_args(default=50, maximum=100)
    organization_id = int_arg("organization_id")
    if organization_id is None:
        organization_id = user_service.current_organization_id(g.identity)

    return jsonify(warehouse_service.list_warehouses(
        organization_id=organization_id,
        is_active=bool_arg("is_active"),
        limit=limit,
        offset=offset,
    ))


@warehouses_bp.get("/<int:warehouse_id>")
@require_auth
def get_warehouse_route(warehouse_id: int):
    return jsonify({"data": warehouse_service.get_warehouse(warehouse_id)})


@warehouses_bp.post("")
@require_auth
def create_warehouse_route():
    warehouse = warehouse_service.create_warehouse(json_body(), identity=g.identity)
    return jsonify({"data": warehouse.to_dict()}), 201


@warehouses_bp.put("/<int:warehouse_id>")
@require_auth
def update_warehouse_route(warehouse_id: int):
    warehouse = warehouse_service.update_warehouse(warehouse_id, json_body(), identity=g.identity)
    return jsonify({"data": warehouse.to_dict()})


@warehouses_bp.delete("/<int:warehouse_id>")
@require_auth
def delete_warehouse_route(warehouse_id: int):
    return jsonify({"data": warehouse_service.delete_warehouse(warehouse_id, identity=g.identity)})
