from __future__ import annotations

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_role, WRITE_ROLES
from ..models import Notification
from ..services import notifications_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_notification,
    ValidationError,
)

NOTIFICATION_POLICY = ModelValidationPolicy(
    writable_fields={"user_id", "title", "message", "type"},
    required_on_create={"title", "message"},
)

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.route("", methods=["GET"])
@require_auth
def list_notifications():
    """Caller's notifications newest-first; ?status=read|unread."""
    items = notifications_service.list_notifications(
        actor=g.current_user,
        status=request.args.get("status") or None,
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "unread_count": notifications_service.unread_count(actor=g.current_user),
    })


@notifications_bp.route("", methods=["POST"])
@require_auth
@require_role(*WRITE_ROLES)
def create_notification():
    data = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Notification, payload=data, policy=NOTIFICATION_POLICY, partial=False)
        enforce_rules_notification(patch)
        user_id = patch.pop("user_id", None) or g.current_user.id
        created = notifications_service.create_notification(user_id=user_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(created.to_dict()), 201


@notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@require_auth
def mark_read(notification_id: int):
    n = notifications_service.mark_as_read(actor=g.current_user, notification_id=notification_id)
    if n is None:
        return jsonify({"error": "Notification not found"}), 404
    return jsonify(n.to_dict())


@notifications_bp.route("/read-all", methods=["POST"])
@require_auth
def mark_all_read():
    updated = notifications_service.mark_all_as_read(actor=g.current_user)
    return jsonify({"updated": updated})
