"""Notifications and the activity log written on workflow transitions."""

from __future__ import annotations

from ..extensions import db
from ..utils.clock import utcnow

NOTIFICATION_TYPES = ("APPROVAL_REQUEST", "STATUS_CHANGE", "ASSIGNMENT")


class Notification(db.Model):
    """A message addressed to a single user."""

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(30), nullable=False)
    message = db.Column(db.Text, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    related_entity_id = db.Column(db.Integer, nullable=True)
    read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class Activity(db.Model):
    """Activity log entry describing something that happened to content."""

    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(50), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    content_id = db.Column(db.Integer, db.ForeignKey("content_items.id"), nullable=True, index=True)
    details = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<Activity {self.id} {self.type}>"
