"""Content items as read and written by the approval and publishing core."""

from __future__ import annotations

from ..extensions import db
from ..utils.clock import utcnow

CONTENT_STATUSES = ("DRAFT", "REVIEW", "APPROVED", "PUBLISHED", "SCHEDULED", "ARCHIVED")


class ContentItem(db.Model):
    """A piece of content that can be reviewed and published."""

    __tablename__ = "content_items"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    body = db.Column(db.Text, nullable=False, default="")
    type = db.Column(db.String(40), nullable=False, default="SOCIAL_POST")
    platform = db.Column(db.String(40), nullable=True)
    brand_pillar = db.Column(db.String(80), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    scheduled_at = db.Column(db.DateTime, nullable=True)
    published_at = db.Column(db.DateTime, nullable=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    assets = db.relationship(
        "ContentAsset",
        order_by="ContentAsset.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def media_urls(self) -> list[str]:
        return [asset.url for asset in self.assets]

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<ContentItem {self.id} {self.status}>"


class ContentAsset(db.Model):
    """Media linked to a content item, in display order."""

    __tablename__ = "content_assets"

    id = db.Column(db.Integer, primary_key=True)
    content_id = db.Column(db.Integer, db.ForeignKey("content_items.id"), nullable=False)
    url = db.Column(db.String(1024), nullable=False)
    mime_type = db.Column(db.String(100), nullable=True)
    position = db.Column(db.Integer, nullable=False, default=0)
