# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .identity import Identity


def require_auth(f):
    """
    Require a caller identity and place it on flask.g.

    Tokens are verified upstream (API gateway JWT authorizer), which forwards
    the subject and email as request headers. This layer only checks that the
    subject is present.

    Sets:
    - g.identity: Identity(user_id, email)

    Returns 401 if the subject header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = (request.headers.get(current_app.config["IDENTITY_USER_ID_HEADER"]) or "").strip()
        if not user_id:
            return jsonify({"error": "Authentication required"}), 401

        email = (request.headers.get(current_app.config["IDENTITY_EMAIL_HEADER"]) or "").strip()
        g.identity = Identity(user_id=user_id, email=email or None)

        return f(*args, **kwargs)

    return decorated_function
