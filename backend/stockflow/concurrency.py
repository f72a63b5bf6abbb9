# Overview: Transaction and row-locking helpers shared by the workflow services.

from __future__ import annotations

from contextlib import contextmanager

from .extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but PostgreSQL honors it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    All-or-nothing unit of work on the request session.

    Commits when the block exits cleanly; any exception rolls back every
    write made inside the block and is re-raised.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
