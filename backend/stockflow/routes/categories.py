# Overview: Flask API routes for the category tree.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import category_service
from .params import bool_arg, int_arg, json_body


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories_route():
    """
    Query parameters:
    - flat: true returns every category in one list; default is a nested tree
    - parent_id: root of the tree (default: top level)
    - is_active: true/false filter
    """
    categories = category_service.list_categories(
        flat=bool_arg("flat") is True,
        parent_id=int_arg("parent_id"),
        is_active=bool_arg("is_active"),
    )
    return jsonify({"data": categories})


@categories_bp.get("/<int:category_id>")
@require_auth
def get_category_route(category_id: int):
    return jsonify({"data": category_service.get_category(category_id)})


@categories_bp.post("")
@require_auth
def create_category_route():
    category = category_service.create_category(json_body(), identity=g.identity)
    return jsonify({"data": category.to_dict()}), 201


@categories_bp.put("/<int:category_id>")
@require_auth
def update_category_route(category_id: int):
    category = category_service.update_category(category_id, json_body(), identity=g.identity)
    return jsonify({"data": category.to_dict()})


@categories_bp.delete("/<int:category_id>")
@require_auth
def delete_category_route(category_id: int):
    return jsonify({"data": category_service.delete_category(category_id, identity=g.identity)})
