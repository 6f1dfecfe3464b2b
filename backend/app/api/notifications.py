"""REST API endpoints for the caller's notifications."""

from __future__ import annotations

from typing import Any

from flask import Blueprint

from ..errors import NotFoundError, success
from ..extensions import db
from ..models.activity import Notification
from ..utils.auth import current_user, require_token
from ..utils.clock import isoformat

bp = Blueprint("notifications", __name__)

MAX_NOTIFICATIONS = 50


def _serialize(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "type": notification.type,
        "message": notification.message,
        "userId": notification.user_id,
        "relatedEntityId": notification.related_entity_id,
        "read": notification.read,
        "createdAt": isoformat(notification.created_at),
    }


@bp.get("/notifications")
@require_token()
def list_notifications() -> tuple[object, int]:
    notifications = (
        Notification.query.filter_by(user_id=current_user().id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(MAX_NOTIFICATIONS)
        .all()
    )
    return success([_serialize(item) for item in notifications])


@bp.patch("/notifications/read-all")
@require_token()
def mark_all_read() -> tuple[object, int]:
    updated = Notification.query.filter_by(user_id=current_user().id, read=False).update(
        {"read": True}
    )
    db.session.commit()
    return success({"updated": updated})


@bp.patch("/notifications/<int:notification_id>/read")
@require_token()
def mark_read(notification_id: int) -> tuple[object, int]:
    notification = Notification.query.filter_by(
        id=notification_id, user_id=current_user().id
    ).first()
    if notification is None:
        raise NotFoundError("Notification not found")
    notification.read = True
    db.session.commit()
    return success(_serialize(notification))
