# Overview: Flask API routes for organizations (tenants).

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import organization_service
from .params import bool_arg, json_body, page_args


organizations_bp = Blueprint("organizations", __name__, url_prefix="/api/organizations")


@organizations_bp.get("")
@require_auth
def list_organizations_route():
    """
    Query parameters:
    - is_active: true/false filter
    - limit (default 50, max 100), offset
    """
    limit, offset = page_args(default=50, maximum=100)
    return jsonify(organization_service.list_organizations(
        is_active=bool_arg("is_active"),
        limit=limit,
        offset=offset,
    ))


@organizations_bp.get("/<int:org_id>")
@require_auth
def get_organization_route(org_id: int):
    return jsonify({"data": organization_service.get_organization(org_id)})


@organizations_bp.post("")
@require_auth
def create_organization_route():
    """name is required; slug defaults to a slugified name."""
    org = organization_service.create_organization(json_body(), identity=g.identity)
    return jsonify({"data": org.to_dict()}), 201


@organizations_bp.put("/<int:org_id>")
@require_auth
def update_organization_route(org_id: int):
    org = organization_service.update_organization(org_id, json_body(), identity=g.identity)
    return jsonify({"data": org.to_dict()})


@organizations_bp.delete("/<int:org_id>")
@require_auth
def delete_organization_route(org_id: int):
    return jsonify({"data": organization_service.delete_organization(org_id, identity=g.identity)})
