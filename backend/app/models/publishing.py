"""Publishing audit records and durable scheduled publications."""

from __future__ import annotations

from ..extensions import db
from ..utils.clock import utcnow

SCHEDULE_STATUSES = ("PENDING", "RUNNING", "DONE", "FAILED", "CANCELLED")


class PublishingRecord(db.Model):
    """A post that was successfully transmitted to a platform."""

    __tablename__ = "publishing_records"

    id = db.Column(db.Integer, primary_key=True)
    content_id = db.Column(db.Integer, db.ForeignKey("content_items.id"), nullable=False)
    platform = db.Column(db.String(40), nullable=False)
    post_id = db.Column(db.String(255), nullable=True, index=True)
    url = db.Column(db.String(1024), nullable=True)
    mock = db.Column(db.Boolean, nullable=False, default=False)
    published_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime, nullable=True)


class ScheduledPublication(db.Model):
    """A publish request that becomes due at ``due_at``."""

    __tablename__ = "scheduled_publications"

    id = db.Column(db.Integer, primary_key=True)
    content_id = db.Column(db.Integer, db.ForeignKey("content_items.id"), nullable=False)
    platforms_json = db.Column(db.Text, nullable=False)
    options_json = db.Column(db.Text, nullable=False, default="{}")
    due_at = db.Column(db.DateTime, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default="PENDING", index=True)
    previous_content_status = db.Column(db.String(20), nullable=True)
    result_json = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    started_at = db.Column(db.DateTime, nullable=True)
    finished_at = db.Column(db.DateTime, nullable=True)
