"""REST API endpoints for publishing and scheduling content."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, current_app, request

from ..errors import ValidationError, success
from ..extensions import limiter
from ..models.publishing import PublishingRecord
from ..publishing.orchestrator import get_content_or_404, publish_content
from ..publishing.scheduler import cancel_scheduled, schedule_publication
from ..utils.auth import current_user, require_token
from ..utils.clock import isoformat

bp = Blueprint("content", __name__)

_PUBLISHER_ROLES = ("ADMIN", "MANAGER", "EDITOR")


def _publish_rate_limit() -> str:
    return current_app.config.get("PUBLISH_RATE_LIMIT", "30 per minute")


def _serialize_record(record: PublishingRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "contentId": record.content_id,
        "platform": record.platform,
        "postId": record.post_id,
        "url": record.url,
        "mock": record.mock,
        "publishedAt": isoformat(record.published_at),
        "deletedAt": isoformat(record.deleted_at),
    }


def _publish_payload() -> tuple[Any, dict[str, Any]]:
    payload = request.get_json(silent=True, force=True)
    if not isinstance(payload, dict):
        payload = {}
    options = payload.get("options")
    if options is None:
        options = {}
    if not isinstance(options, dict):
        raise ValidationError("options must be an object")
    return payload, options


@bp.post("/content/<int:content_id>/publish")
@require_token(*_PUBLISHER_ROLES)
@limiter.limit(_publish_rate_limit)
def publish(content_id: int) -> tuple[object, int]:
    payload, options = _publish_payload()
    result = publish_content(
        content_id, payload.get("platforms"), options, actor_id=current_user().id
    )
    return success(result)


@bp.post("/content/<int:content_id>/schedule")
@require_token(*_PUBLISHER_ROLES)
def schedule(content_id: int) -> tuple[object, int]:
    payload, options = _publish_payload()
    confirmation = schedule_publication(
        content_id,
        payload.get("platforms"),
        payload.get("scheduledTime"),
        options,
        actor_id=current_user().id,
    )
    return success(confirmation, HTTPStatus.CREATED)


@bp.delete("/content/<int:content_id>/schedule")
@require_token(*_PUBLISHER_ROLES)
def cancel_schedule(content_id: int) -> tuple[object, int]:
    return success(cancel_scheduled(content_id, actor_id=current_user().id))


@bp.get("/content/<int:content_id>/publications")
@require_token()
def list_publications(content_id: int) -> tuple[object, int]:
    content = get_content_or_404(content_id)
    records = (
        PublishingRecord.query.filter_by(content_id=content.id)
        .order_by(PublishingRecord.published_at.desc(), PublishingRecord.id.desc())
        .all()
    )
    return success([_serialize_record(record) for record in records])
