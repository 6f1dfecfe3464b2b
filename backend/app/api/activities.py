"""API endpoint exposing the activity log."""

from __future__ import annotations

import json
from typing import Any

from flask import Blueprint, request

from ..errors import success
from ..models.activity import Activity
from ..utils.auth import require_token
from ..utils.clock import isoformat

bp = Blueprint("activities", __name__)


def _serialize_entry(entry: Activity) -> dict[str, Any]:
    try:
        details = json.loads(entry.details) if entry.details else None
    except (TypeError, ValueError):
        details = entry.details
    return {
        "id": entry.id,
        "type": entry.type,
        "userId": entry.user_id,
        "contentId": entry.content_id,
        "details": details,
        "createdAt": isoformat(entry.created_at),
    }


@bp.get("/activities")
@require_token()
def list_activities() -> tuple[object, int]:
    content_id = request.args.get("contentId", type=int)
    limit = request.args.get("limit", type=int) or 20
    limit = max(1, min(limit, 100))

    query = Activity.query
    if content_id is not None:
        query = query.filter_by(content_id=content_id)
    entries = query.order_by(Activity.created_at.desc(), Activity.id.desc()).limit(limit).all()
    return success([_serialize_entry(entry) for entry in entries])
