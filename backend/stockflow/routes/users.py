# Overview: Flask API routes for user profiles and user administration.

"""
User Routes

- /api/users/me: the caller's own profile (created on first GET)
- /api/users[/<id>]: administration; DELETE deactivates
"""

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import user_service
from .params import bool_arg, int_arg, json_body, page_args


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/me")
@require_auth
def get_current_user_route():
    """Return the caller's profile, creating it on first access."""
    user = user_service.get_or_create_current_user(g.identity)
    return jsonify({"data": user.to_dict()})


@users_bp.put("/me")
@require_auth
def update_current_user_route():
    """
    Update the caller's own profile.

    Request body (all optional): first_name, last_name, phone
    """
    user = user_service.update_current_user(g.identity, json_body())
    return jsonify({"data": user.to_dict()})


@users_bp.get("")
@require_auth
def list_users_route():
    limit, offset = page_args(default=50, maximum=100)
    result = user_service.list_users(
        organization_id=int_arg("organization_id"),
        is_active=bool_arg("is_active"),
        limit=limit,
        offset=offset,
    )
    return jsonify(result)


@users_bp.get("/<int:user_id>")
@require_auth
def get_user_route(user_id: int):
    return jsonify({"data": user_service.get_user(user_id).to_dict()})


@users_bp.post("")
@require_auth
def create_user_route():
    """
    Request body:
    {
        "cognito_sub": "...",   // required, identity provider subject
        "email": "...",         // required
        "first_name": "...", "last_name": "...", "phone": "...",
        "organization_id": 1
    }
    """
    user = user_service.create_user(json_body(), identity=g.identity)
    return jsonify({"data": user.to_dict()}), 201


@users_bp.put("/<int:user_id>")
@require_auth
def update_user_route(user_id: int):
    user = user_service.update_user(user_id, json_body(), identity=g.identity)
    return jsonify({"data": user.to_dict()})


@users_bp.delete("/<int:user_id>")
@require_auth
def deactivate_user_route(user_id: int):
    user = user_service.deactivate_user(user_id, identity=g.identity)
    return jsonify({"data": {"id": user.id, "deleted": True, "soft_deleted": True}})
