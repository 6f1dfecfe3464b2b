"""REST API endpoints exposing platform connections and post removal."""

from __future__ import annotations

from flask import Blueprint

from ..errors import NotFoundError, UpstreamError, success
from ..extensions import db
from ..models.publishing import PublishingRecord
from ..publishing.adapters import find_adapter, get_adapters
from ..utils.auth import require_token
from ..utils.clock import utcnow

bp = Blueprint("social", __name__)


@bp.get("/social/connections")
@require_token()
def connections() -> tuple[object, int]:
    snapshot = {name: adapter.account_status() for name, adapter in get_adapters().items()}
    return success(snapshot)


@bp.delete("/social/<platform>/posts/<post_id>")
@require_token("ADMIN", "MANAGER")
def delete_post(platform: str, post_id: str) -> tuple[object, int]:
    adapter = find_adapter(platform.lower())
    if adapter is None:
        raise NotFoundError("Platform not supported", "PLATFORM_NOT_SUPPORTED")

    outcome = adapter.delete(post_id)
    if not outcome.success:
        raise UpstreamError(outcome.error or "Failed to delete post", outcome.error_code)

    records = PublishingRecord.query.filter_by(
        platform=adapter.name, post_id=post_id, deleted_at=None
    ).all()
    for record in records:
        record.deleted_at = utcnow()
    db.session.commit()

    return success(outcome.to_dict())
