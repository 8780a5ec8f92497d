# Overview: Request authentication and capability decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .permissions import can_access
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets:
    - g.current_user: the authenticated, active User
    - g.session_token: the raw bearer token (used by logout)

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"message": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if user is None:
            return jsonify({"message": "Invalid or expired token"}), 401

        g.current_user = user
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_capability(resource: str, action: str):
    """
    Require a collection-level capability (see permissions.ROLE_CAPABILITIES).

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"message": "Authentication required"}), 401

            if not can_access(user, resource, action):
                current_app.logger.warning(
                    "Capability denied: user=%s resource=%s action=%s path=%s",
                    user.id, resource, action, request.path,
                )
                return jsonify({"message": "Access denied"}), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator

