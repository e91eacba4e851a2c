from __future__ import annotations

from ..extensions import db
from invdocs.time_utils import to_utc_z


class ActivityLog(db.Model):
    """
    Append-only audit trail of user actions.

    No updates/deletes. `time` is assigned by the service so the duplicate
    window check and the stored value agree.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_time_id", "time", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user = db.Column(db.String(64), nullable=False, default="Unknown")
    action = db.Column(db.String(500), nullable=False, default="")
    time = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user": self.user,
            "action": self.action,
            "time": to_utc_z(self.time),
        }
