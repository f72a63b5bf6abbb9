# Overview: Flask API routes for reading the audit trail.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth
from ..services import audit_service
from .params import datetime_arg, int_arg, page_args


audit_logs_bp = Blueprint("audit_logs", __name__, url_prefix="/api/audit-logs")


@audit_logs_bp.get("")
@require_auth
def list_audit_logs_route():
    """
    Query parameters:
    - user_id, entity_type, entity_id, action (CREATE/UPDATE/DELETE)
    - start_date, end_date: ISO-8601, inclusive
    - limit (default 100, max 500), offset
    """
    limit, offset = page_args(default=100, maximum=500)
    return jsonify(audit_service.list_audit_logs(
        user_id=int_arg("user_id"),
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id"),
        action=request.args.get("action"),
        start_date=datetime_arg("start_date"),
        end_date=datetime_arg("end_date"),
        limit=limit,
        offset=offset,
    ))


@audit_logs_bp.get("/<int:log_id>")
@require_auth
def get_audit_log_route(log_id: int):
    return jsonify({"data": audit_service.get_audit_log(log_id).to_dict()})


@audit_logs_bp.get("/entity/<entity_type>/<entity_id>")
@require_auth
def entity_history_route(entity_type: str, entity_id: str):
    """Latest 100 entries for one entity, newest first."""
    entries = audit_service.entity_history(entity_type, entity_id)
    return jsonify({"data": [entry.to_dict() for entry in entries]})
