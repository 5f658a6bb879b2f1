# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .models.auth import ROLE_ADMINISTRATOR, ROLE_MANAGER, ROLE_OPERATOR
from .services import session_service


WRITE_ROLES = (ROLE_ADMINISTRATOR, ROLE_MANAGER, ROLE_OPERATOR)


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated Profile
    - g.session_context: The full SessionContext object
    - g.auth_token: The plaintext bearer token (for logout)

    Returns 401 if the header is missing, or the token is invalid, expired
    or belongs to a deactivated profile.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.profile
        g.session_context = context
        g.auth_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require the authenticated profile to hold one of the given roles."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "message": f"Requires one of: {', '.join(roles)}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
