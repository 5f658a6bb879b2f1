# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/chaintrack/routes/auth.py
"""
Authentication API routes

- Login by username or email returns a bearer token
- Logout revokes the presented token
- /me returns the profile bound to the token

Accounts are created by administrators via the CLI (flask users create).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.concurrency import StoreError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("username") or data.get("email") or data.get("identifier")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "username/email and password required"}), 400

        profile = auth_service.authenticate(identifier, password)

        if not profile:
            current_app.logger.info("Failed login for %s", identifier)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(profile.id)

        return jsonify({
            "user": profile.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except StoreError:
        current_app.logger.exception("Store unavailable during login")
        return jsonify({"error": "Storage unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]

        revoked = session_service.revoke_session(token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except StoreError:
        current_app.logger.exception("Store unavailable during logout")
        return jsonify({"error": "Storage unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Profile and session bound to the bearer token."""
    return jsonify({
        "user": g.current_user.to_dict(),
        "session": g.session_context.session.to_dict(),
    }), 200
