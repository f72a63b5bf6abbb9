# Overview: Small helpers shared by the catalog services (lookups, uniqueness, commits).

from __future__ import annotations

import re

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError


def get_or_404(model, entity_id: int, label: str):
    obj = db.session.get(model, entity_id)
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def ensure_unique(model, column: str, value, *, label: str, exclude_id: int | None = None, **scope) -> None:
    """
    Pre-insert business key check.

    `scope` narrows the check (e.g. parent_id for sibling-unique slugs).
    The database constraint still backstops concurrent inserts.
    """
    if value is None:
        return
    query = db.session.query(model.id).filter(getattr(model, column) == value)
    for key, scoped_value in scope.items():
        attr = getattr(model, key)
        query = query.filter(attr.is_(None) if scoped_value is None else attr == scoped_value)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"{label} '{value}' already exists")


def apply_patch(obj, patch: dict) -> dict:
    """Set attributes from a validated patch and return {field: [before, after]} for changed ones."""
    diff = {}
    for key, value in patch.items():
        before = getattr(obj, key)
        if before != value:
            diff[key] = [_jsonable(before), _jsonable(value)]
            setattr(obj, key, value)
    return diff


def _jsonable(value):
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def flush_or_conflict(message: str) -> None:
    """Flush pending inserts so ids exist; a unique-constraint race surfaces as ConflictError."""
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message)


def commit_or_conflict(message: str) -> None:
    """Commit; a unique-constraint race surfaces as ConflictError."""
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    return slug or "item"
