# Overview: Human-readable document numbers for purchase and sales orders.

from __future__ import annotations

import secrets
import string

from ..extensions import db
from ..errors import ConflictError
from stockflow.time_utils import year_month_code

_ALPHABET = string.digits + string.ascii_uppercase
_SUFFIX_LENGTH = 6
_MAX_ATTEMPTS = 5


def _random_suffix() -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))


def generate_order_number(prefix: str, model) -> str:
    """
    Build a number like PO-2610-7K3QZ1 that is not yet used by `model`.

    The unique constraint on order_number stays the final guard against
    concurrent writers picking the same suffix.
    """
    stamp = year_month_code()
    for _ in range(_MAX_ATTEMPTS):
        candidate = f"{prefix}-{stamp}-{_random_suffix()}"
        exists = db.session.query(model.id).filter(model.order_number == candidate).first()
        if not exists:
            return candidate
    raise ConflictError(f"Could not allocate a unique {prefix} order number")
