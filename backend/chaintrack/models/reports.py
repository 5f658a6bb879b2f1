from __future__ import annotations

from ..extensions import db
from chaintrack.time_utils import to_utc_z


REPORT_TYPES = ("supply_chain", "logistics", "inventory", "performance")
REPORT_FREQUENCIES = ("daily", "weekly", "monthly", "custom")
REPORT_STATUSES = ("active", "paused", "failed")


class Report(db.Model):
    """
    Saved report definition with its run schedule.

    next_run is advanced from last_run by the frequency interval
    (see reports_service.next_run_interval).
    """
    __tablename__ = "reports"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(32), nullable=False)
    frequency = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="active")

    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False, index=True)

    last_run = db.Column(db.DateTime(timezone=True), nullable=True)
    next_run = db.Column(db.DateTime(timezone=True), nullable=True)

    extra_metadata = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "frequency": self.frequency,
            "status": self.status,
            "created_by": self.created_by,
            "last_run": to_utc_z(self.last_run),
            "next_run": to_utc_z(self.next_run),
            "metadata": self.extra_metadata,
            "created_at": to_utc_z(self.created_at),
        }
