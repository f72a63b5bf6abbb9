# Overview: Flask API routes for supplier operations.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import supplier_service
from .params import bool_arg, json_body, page_args


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    limit, offset = page_args(default=50, maximum=100)
    return jsonify(supplier_service.list_suppliers(
        is_active=bool_arg("is_active"),
        search=request.args.get("search"),
        limit=limit,
        offset=offset,
    ))


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    return jsonify({"data": supplier_service.get_supplier(supplier_id)})


@suppliers_bp.post("")
@require_auth
def create_supplier_route():
    supplier = supplier_service.create_supplier(json_body(), identity=g.identity)
    return jsonify({"data": supplier.to_dict()}), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
def update_supplier_route(supplier_id: int):
    supplier = supplier_service.update_supplier(supplier_id, json_body(), identity=g.identity)
    return jsonify({"data": supplier.to_dict()})


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
def delete_supplier_route(supplier_id: int):
    return jsonify({"data": supplier_service.delete_supplier(supplier_id, identity=g.identity)})
