# Overview: Service-layer exception taxonomy; each error carries the HTTP status it maps to.

"""
Service errors.

Services raise these; the app factory turns them into JSON responses.
Anything that is not a ServiceError is an internal failure (500).
"""


class ServiceError(Exception):
    """Base class for errors a client can act on."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(ServiceError):
    """Missing or malformed input."""
    status_code = 400


class NotFoundError(ServiceError):
    """A referenced entity does not exist."""
    status_code = 404


class ConflictError(ServiceError):
    """Business key collision (sku, code, slug, order number)."""
    status_code = 409


class InvalidStateError(ServiceError):
    """Operation not allowed in the entity's current status."""
    status_code = 409

    def __init__(self, message: str, *, current: str | None = None, attempted: str | None = None):
        details = {}
        if current is not None:
            details["current_status"] = current
        if attempted is not None:
            details["attempted"] = attempted
        super().__init__(message, details)


class InvalidTransitionError(InvalidStateError):
    """Status change not present in the transition table."""

    def __init__(self, current: str, attempted: str):
        super().__init__(
            f"Invalid status transition from {current} to {attempted}",
            current=current,
            attempted=attempted,
        )


class DependencyExistsError(ServiceError):
    """Delete blocked by dependent records."""
    status_code = 409
