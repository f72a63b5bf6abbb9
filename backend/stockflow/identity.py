# Overview: Caller identity forwarded by the upstream authorizer.

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """
    Pre-validated caller identity.

    user_id is the authorizer's subject claim and maps to User.cognito_sub.
    The backend never verifies tokens itself.
    """
    user_id: str
    email: str | None = None
