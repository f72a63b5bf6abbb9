# Overview: Append-only audit trail writes and read queries.

"""
Audit Service

INVARIANTS:
- Audit rows are inserted, never updated or deleted.
- A failed audit write never unwinds the business change it describes:
  the insert runs in a SAVEPOINT and errors are logged, not raised.
- Entries are attributed to the User row matching the caller's identity;
  callers without a User row are not audited.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..identity import Identity
from ..models import AuditLog, User
from ..pagination import paginate

ACTIONS = ("CREATE", "UPDATE", "DELETE")

HISTORY_LIMIT = 100


def resolve_user(identity: Identity | None) -> User | None:
    if identity is None or not identity.user_id:
        return None
    return db.session.query(User).filter_by(cognito_sub=identity.user_id).first()


def record(
    identity: Identity | None,
    action: str,
    entity_type: str,
    entity_id,
    changes: dict | None = None,
) -> AuditLog | None:
    """
    Stage an audit entry in the current transaction.

    Returns the AuditLog row, or None when the caller has no User row or the
    insert failed. The caller's commit persists the entry together with the
    change it records.
    """
    if action not in ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")

    user = resolve_user(identity)
    if user is None:
        return None

    entry = AuditLog(
        user_id=user.id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        changes=changes,
    )
    try:
        with db.session.begin_nested():
            db.session.add(entry)
    except SQLAlchemyError:
        current_app.logger.exception(
            "Failed to write audit entry %s %s:%s", action, entity_type, entity_id
        )
        return None
    return entry


def list_audit_logs(
    *,
    user_id: int | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int,
    offset: int,
) -> dict:
    """Newest first. Date bounds are inclusive."""
    if action is not None and action not in ACTIONS:
        raise ValidationError(f"action must be one of {', '.join(ACTIONS)}")

    query = db.session.query(AuditLog)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLog.entity_id == str(entity_id))
    if action:
        query = query.filter(AuditLog.action == action)
    if start_date is not None:
        query = query.filter(AuditLog.created_at >= start_date)
    if end_date is not None:
        query = query.filter(AuditLog.created_at <= end_date)

    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    return paginate(query, limit=limit, offset=offset)


def get_audit_log(log_id: int) -> AuditLog:
    entry = db.session.get(AuditLog, log_id)
    if entry is None:
        raise NotFoundError("Audit log not found")
    return entry


def entity_history(entity_type: str, entity_id) -> list[AuditLog]:
    return (
        db.session.query(AuditLog)
        .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == str(entity_id))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(HISTORY_LIMIT)
        .all()
    )
