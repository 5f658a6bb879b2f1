# Overview: Service-layer operations for per-user notifications.

from __future__ import annotations

from ..extensions import db
from ..models import Notification, Profile
from ..validation import ValidationError
from .concurrency import commit_or_raise, translate_store_errors
from .repository import EntityRepository
from .session_service import require_actor

notifications = EntityRepository(
    Notification,
    default_order=[Notification.created_at.desc(), Notification.id.desc()],
)


@translate_store_errors
def list_notifications(*, actor: Profile | None, status: str | None = None) -> list[Notification]:
    actor = require_actor(actor)
    filters = {"user_id": actor.id}
    if status:
        filters["status"] = status
    return notifications.list(filters)


@translate_store_errors
def unread_count(*, actor: Profile | None) -> int:
    actor = require_actor(actor)
    return db.session.query(Notification).filter(
        Notification.user_id == actor.id,
        Notification.status == "unread",
    ).count()


@translate_store_errors
def create_notification(*, user_id: int, patch: dict) -> Notification:
    """Deliver a notification to a profile. Always starts unread."""
    if db.session.get(Profile, user_id) is None:
        raise ValidationError("Recipient not found")

    return notifications.insert({
        "user_id": user_id,
        "title": patch["title"],
        "message": patch["message"],
        "type": patch.get("type") or "info",
        "status": "unread",
    })


@translate_store_errors
def mark_as_read(*, actor: Profile | None, notification_id: int) -> Notification | None:
    """Returns None if the notification does not exist or belongs to someone else."""
    actor = require_actor(actor)
    n = notifications.get(notification_id)
    if n is None or n.user_id != actor.id:
        return None
    if n.status != "read":
        n.status = "read"
        commit_or_raise()
    return n


@translate_store_errors
def mark_all_as_read(*, actor: Profile | None) -> int:
    """Mark every unread notification of the acting profile as read; returns the count."""
    actor = require_actor(actor)
    updated = db.session.query(Notification).filter(
        Notification.user_id == actor.id,
        Notification.status == "unread",
    ).update({"status": "read"}, synchronize_session=False)
    commit_or_raise()
    return updated
