from __future__ import annotations

from ..extensions import db
from chaintrack.time_utils import to_utc_z


NOTIFICATION_TYPES = ("info", "success", "warning", "error")
NOTIFICATION_STATUSES = ("read", "unread")


class Notification(db.Model):
    """Per-user inbox message. Only the read/unread flag changes after creation."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(16), nullable=False, default="info")  # info, success, warning, error
    status = db.Column(db.String(16), nullable=False, default="unread")  # read, unread

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
