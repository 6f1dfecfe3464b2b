"""Notifications and activity entries emitted by workflow transitions."""
from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from ..extensions import db
from ..models.activity import Activity, Notification
from ..models.auth import User
from ..models.workflow import StageDefinition


def resolve_users_by_role(role: str) -> list[int]:
    """Return the ids of every user currently holding ``role``."""

    rows = db.session.query(User.id).filter(User.role == role).order_by(User.id).all()
    return [row.id for row in rows]


def stage_recipients(stage: StageDefinition) -> list[int]:
    """Users to notify for a stage: the assigned user, else all role holders."""

    if stage.assignee_id is not None:
        return [stage.assignee_id]
    if stage.assignee_role:
        return resolve_users_by_role(stage.assignee_role)
    return []


def notify_users(
    user_ids: Iterable[int],
    notification_type: str,
    message: str,
    related_entity_id: int | None = None,
) -> list[Notification]:
    """Add one notification per user to the current session."""

    notifications = [
        Notification(
            type=notification_type,
            message=message,
            user_id=user_id,
            related_entity_id=related_entity_id,
        )
        for user_id in dict.fromkeys(user_ids)
    ]
    db.session.add_all(notifications)
    return notifications


def notify_stage_assignees(
    instance_id: int, stage: StageDefinition, requester: User | None
) -> list[Notification]:
    requester_name = requester.name if requester is not None else "Someone"
    if stage.type == "APPROVAL":
        notification_type = "APPROVAL_REQUEST"
        if stage.assignee_id is None and stage.assignee_role:
            message = (
                f"{requester_name} requested {stage.assignee_role} approval for {stage.name}"
            )
        else:
            message = f"{requester_name} requested your approval for {stage.name}"
    else:
        notification_type = "ASSIGNMENT"
        message = f"{requester_name} assigned you the stage {stage.name}"
    return notify_users(stage_recipients(stage), notification_type, message, instance_id)


def record_activity(
    activity_type: str,
    user_id: int | None,
    content_id: int | None,
    details: dict[str, Any] | None = None,
) -> Activity:
    """Add an activity log entry to the current session."""

    entry = Activity(
        type=activity_type,
        user_id=user_id,
        content_id=content_id,
        details=json.dumps(details) if details is not None else None,
    )
    db.session.add(entry)
    return entry
