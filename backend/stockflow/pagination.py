# Overview: Offset pagination helpers used by list endpoints.

from __future__ import annotations


def clamp_page(limit: int | None, offset: int | None, *, default: int, maximum: int) -> tuple[int, int]:
    """Clamp limit into [1, maximum] and offset to >= 0."""
    if limit is None:
        limit = default
    if limit < 1:
        limit = 1
    if limit > maximum:
        limit = maximum
    if offset is None or offset < 0:
        offset = 0
    return limit, offset


def paginate(query, *, limit: int, offset: int, serialize=None) -> dict:
    """
    Run a count + page fetch and build the standard list envelope.

    Returns {"data": [...], "pagination": {total, limit, offset, has_more}}.
    """
    total = query.order_by(None).count()
    rows = query.offset(offset).limit(limit).all()
    serialize = serialize or (lambda row: row.to_dict())
    return {
        "data": [serialize(row) for row in rows],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(rows) < total,
        },
    }
