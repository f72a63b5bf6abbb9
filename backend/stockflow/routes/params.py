# Overview: Query-string parsing helpers shared by the blueprints.

from __future__ import annotations

from flask import request

from ..errors import ValidationError
from ..pagination import clamp_page
from ..time_utils import parse_iso_datetime


def page_args(*, default: int, maximum: int) -> tuple[int, int]:
    """limit/offset from the query string, clamped to [1, maximum] and >= 0."""
    limit = request.args.get("limit", default, type=int)
    offset = request.args.get("offset", 0, type=int)
    return clamp_page(limit, offset, default=default, maximum=maximum)


def int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def bool_arg(name: str) -> bool | None:
    """'true'/'false' (any case); absent means no filter."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() == "true"


def datetime_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body is required")
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data
