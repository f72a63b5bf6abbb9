# Overview: Service-layer operations for users; self-service profile plus admin management.

"""
User Service

Users mirror identities issued by the upstream authorizer. A profile row is
created the first time a caller fetches /api/users/me, which is also what
makes that caller visible to the audit trail.

Deleting a user only deactivates it: audit entries keep pointing at the row.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..identity import Identity
from ..models import Organization, User
from ..pagination import paginate
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service
from .crud import apply_patch, commit_or_conflict, flush_or_conflict, get_or_404
from stockflow.time_utils import utcnow


SELF_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"first_name", "last_name", "phone"}),
)

ADMIN_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "cognito_sub", "email", "first_name", "last_name", "phone",
        "organization_id", "is_active",
    }),
    required_on_create=frozenset({"cognito_sub", "email"}),
)


def get_or_create_current_user(identity: Identity) -> User:
    """Return the caller's profile, creating it on first access. Stamps last_login_at."""
    user = db.session.query(User).filter_by(cognito_sub=identity.user_id).first()
    if user is None:
        if not identity.email:
            raise ValidationError("An email is required to create a user profile")
        user = User(cognito_sub=identity.user_id, email=identity.email.strip())
        db.session.add(user)

    user.last_login_at = utcnow()
    commit_or_conflict("A user with this email already exists")
    return user


def update_current_user(identity: Identity, payload: dict) -> User:
    user = db.session.query(User).filter_by(cognito_sub=identity.user_id).first()
    if user is None:
        raise NotFoundError("User not found")

    patch = validate_payload(model=User, payload=payload, policy=SELF_POLICY, partial=True)
    apply_patch(user, patch)
    db.session.commit()
    return user


def current_organization_id(identity: Identity | None) -> int | None:
    """Organization of the calling user, used as the default list scope."""
    user = audit_service.resolve_user(identity)
    return user.organization_id if user else None


def list_users(
    *,
    organization_id: int | None = None,
    is_active: bool | None = None,
    limit: int,
    offset: int,
) -> dict:
    query = db.session.query(User)
    if organization_id is not None:
        query = query.filter(User.organization_id == organization_id)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    query = query.order_by(User.created_at.desc(), User.id.desc())
    return paginate(query, limit=limit, offset=offset)


def get_user(user_id: int) -> User:
    return get_or_404(User, user_id, "User")


def _check_unique(cognito_sub: str | None, email: str | None, exclude_id: int | None = None) -> None:
    clauses = []
    if cognito_sub:
        clauses.append(User.cognito_sub == cognito_sub)
    if email:
        clauses.append(User.email == email)
    if not clauses:
        return
    query = db.session.query(User.id).filter(db.or_(*clauses))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("User with this email or identity already exists")


def _check_organization(organization_id: int | None) -> None:
    if organization_id is not None and db.session.get(Organization, organization_id) is None:
        raise NotFoundError("Organization not found")


def create_user(payload: dict, *, identity: Identity) -> User:
    patch = validate_payload(model=User, payload=payload, policy=ADMIN_POLICY, partial=False)
    _check_unique(patch["cognito_sub"], patch["email"])
    _check_organization(patch.get("organization_id"))

    user = User(**patch)
    db.session.add(user)
    flush_or_conflict("User with this email or identity already exists")
    audit_service.record(identity, "CREATE", "User", user.id, {"after": user.to_dict()})
    commit_or_conflict("User with this email or identity already exists")
    return user


def update_user(user_id: int, payload: dict, *, identity: Identity) -> User:
    user = get_or_404(User, user_id, "User")
    patch = validate_payload(model=User, payload=payload, policy=ADMIN_POLICY, partial=True)
    _check_unique(patch.get("cognito_sub"), patch.get("email"), exclude_id=user.id)
    if "organization_id" in patch:
        _check_organization(patch["organization_id"])

    diff = apply_patch(user, patch)
    if diff:
        audit_service.record(identity, "UPDATE", "User", user.id, diff)
    commit_or_conflict("User with this email or identity already exists")
    return user


def deactivate_user(user_id: int, *, identity: Identity) -> User:
    user = get_or_404(User, user_id, "User")
    user.is_active = False
    audit_service.record(identity, "DELETE", "User", user.id, {"is_active": [True, False]})
    db.session.commit()
    return user
