from __future__ import annotations

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_role
from ..models.auth import ROLE_ADMINISTRATOR
from ..services import profiles_service
from ..validation import ValidationError, ConflictError

profiles_bp = Blueprint("profiles", __name__, url_prefix="/api/profiles")

SELF_EDITABLE = ("username", "full_name", "company_name")
ADMIN_EDITABLE = SELF_EDITABLE + ("role", "is_active")


def _clean(data: dict, allowed: tuple[str, ...]) -> dict:
    unknown = sorted(k for k in data if k not in allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    patch = {}
    for key, value in data.items():
        if key == "is_active":
            if not isinstance(value, bool):
                raise ValidationError("is_active must be a boolean")
            patch[key] = value
        elif value is None:
            if key in ("username", "role"):
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = str(value).strip()

    if "username" in patch and not patch["username"]:
        raise ValidationError("username cannot be blank")
    return patch


@profiles_bp.route("/me", methods=["GET"])
@require_auth
def get_own_profile():
    return jsonify(g.current_user.to_dict())


@profiles_bp.route("/me", methods=["PUT"])
@require_auth
def update_own_profile():
    data = request.get_json(silent=True) or {}
    try:
        profile = profiles_service.update_own_profile(
            actor=g.current_user,
            patch=_clean(data, SELF_EDITABLE),
        )
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(profile.to_dict())


@profiles_bp.route("", methods=["GET"])
@require_auth
def list_profiles():
    items = profiles_service.list_profiles(search=request.args.get("search") or None)
    return jsonify({"items": [p.to_dict() for p in items]})


@profiles_bp.route("/<int:profile_id>", methods=["PUT"])
@require_auth
@require_role(ROLE_ADMINISTRATOR)
def update_profile(profile_id: int):
    data = request.get_json(silent=True) or {}
    try:
        profile = profiles_service.update_profile(
            profile_id=profile_id,
            patch=_clean(data, ADMIN_EDITABLE),
        )
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    if profile is None:
        return jsonify({"error": "Profile not found"}), 404
    return jsonify(profile.to_dict())
