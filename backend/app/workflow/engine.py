"""Stage-sequenced approval workflow for content items."""
from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from flask import current_app
from sqlalchemy import and_, exists, or_, update

from ..errors import ApiError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models.auth import User
from ..models.content import ContentItem
from ..models.workflow import (
    DECISION_ACTIONS,
    Approval,
    StageDefinition,
    WorkflowInstance,
    WorkflowTemplate,
)
from ..publishing.orchestrator import publish_content
from ..utils.clock import utcnow
from .notifications import notify_stage_assignees, notify_users, record_activity


@dataclass
class DecisionResult:
    """Outcome of :func:`record_decision`."""

    approval: Approval
    instance: WorkflowInstance
    publishing: dict[str, Any] | None = None


def create_template(
    name: str,
    description: str | None,
    template_type: str,
    stages: Sequence[Mapping[str, Any]],
    created_by: int | None,
) -> WorkflowTemplate:
    """Persist a template; stage order follows the position in ``stages``."""

    template = WorkflowTemplate(
        name=name, description=description, type=template_type, created_by=created_by
    )
    template.stages = [
        StageDefinition(
            name=stage["name"],
            order=index,
            type=stage["type"],
            assignee_id=stage.get("assignee_id"),
            assignee_role=stage.get("assignee_role"),
            config_json=json.dumps(stage.get("config") or {}),
        )
        for index, stage in enumerate(stages)
    ]
    db.session.add(template)
    db.session.commit()
    current_app.logger.info(
        "Created workflow template %s with %s stage(s)", template.id, len(template.stages)
    )
    return template


def get_template_or_404(workflow_id: Any) -> WorkflowTemplate:
    template = db.session.get(WorkflowTemplate, workflow_id) if workflow_id is not None else None
    if template is None:
        raise NotFoundError("Workflow not found")
    return template


def get_instance_or_404(instance_id: Any) -> WorkflowInstance:
    instance = db.session.get(WorkflowInstance, instance_id)
    if instance is None:
        raise NotFoundError("Workflow instance not found")
    return instance


def instance_metadata(instance: WorkflowInstance) -> dict[str, Any]:
    try:
        value = json.loads(instance.metadata_json or "{}")
    except (TypeError, ValueError):
        return {}
    return value if isinstance(value, dict) else {}


def is_stage_assignee(stage: StageDefinition, user: User) -> bool:
    if stage.assignee_id is not None and stage.assignee_id == user.id:
        return True
    return bool(stage.assignee_role) and stage.assignee_role == user.role


def start_workflow(
    workflow_id: Any,
    content_id: Any,
    started_by: User,
    metadata: Mapping[str, Any] | None = None,
) -> WorkflowInstance:
    """Create an instance at stage 0 and notify the first stage's assignees."""

    template = get_template_or_404(workflow_id)
    content = None
    if content_id is not None:
        content = db.session.get(ContentItem, content_id)
        if content is None:
            raise NotFoundError("Content not found")

    instance = WorkflowInstance(
        workflow_id=template.id,
        content_id=content.id if content is not None else None,
        current_stage=0,
        status="PENDING",
        metadata_json=json.dumps(dict(metadata or {})),
        started_by=started_by.id,
    )
    db.session.add(instance)
    db.session.flush()

    if content is not None and content.status == "DRAFT":
        content.status = "REVIEW"
    record_activity(
        "WORKFLOW_STARTED",
        started_by.id,
        instance.content_id,
        {"instanceId": instance.id, "workflowId": template.id},
    )

    stages = template.stages
    if not stages:
        instance.status = "COMPLETED"
        instance.completed_at = utcnow()
        record_activity(
            "WORKFLOW_COMPLETED", started_by.id, instance.content_id, {"instanceId": instance.id}
        )
        db.session.commit()
        current_app.logger.info("Workflow instance %s has no stages; completed", instance.id)
        _on_completed(instance, started_by)
        return instance

    instance.status = "IN_PROGRESS"
    if stages[0].type == "APPROVAL":
        notify_stage_assignees(instance.id, stages[0], started_by)
    db.session.commit()
    current_app.logger.info(
        "Started workflow instance %s of template %s for content %s",
        instance.id,
        template.id,
        instance.content_id,
    )
    return instance


def record_decision(
    instance_id: Any,
    stage_id: Any,
    user: User,
    action: str,
    comments: str | None = None,
) -> DecisionResult:
    """Apply an approval or rejection to the instance's current stage.

    The stage index and status read here are re-checked by a conditional
    update, so two decisions racing on the same stage advance it once; the
    loser receives a conflict error and nothing it wrote is kept.
    """

    if action not in DECISION_ACTIONS:
        raise ValidationError(f"action must be one of {', '.join(DECISION_ACTIONS)}")

    instance = get_instance_or_404(instance_id)
    if instance.is_terminal:
        raise ConflictError(
            f"Workflow instance is already {instance.status}", "INSTANCE_TERMINAL"
        )

    stages = instance.workflow.stages
    expected_stage = instance.current_stage
    if not 0 <= expected_stage < len(stages):
        raise ConflictError("Workflow instance has no current stage", "STALE_STAGE")
    stage = stages[expected_stage]
    if stage_id != stage.id:
        raise ConflictError("Stage is not the current stage of this instance", "STALE_STAGE")
    if not is_stage_assignee(stage, user):
        raise ForbiddenError("You are not assigned to this stage")

    now = utcnow()
    is_last = expected_stage == len(stages) - 1
    if action == "REJECTED":
        values: dict[str, Any] = {"status": "REJECTED"}
    elif is_last:
        values = {"status": "COMPLETED", "completed_at": now}
    else:
        values = {"current_stage": expected_stage + 1}

    result = db.session.execute(
        update(WorkflowInstance)
        .where(
            WorkflowInstance.id == instance.id,
            WorkflowInstance.current_stage == expected_stage,
            WorkflowInstance.status == "IN_PROGRESS",
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise ConflictError(
            "Stage was already resolved by another decision", "STALE_STAGE"
        )

    approval = Approval(
        instance_id=instance.id,
        stage_id=stage.id,
        user_id=user.id,
        action=action,
        comments=comments,
        created_at=now,
    )
    db.session.add(approval)

    details = {"instanceId": instance.id, "stage": stage.name, "comments": comments}
    if action == "REJECTED":
        record_activity("WORKFLOW_REJECTED", user.id, instance.content_id, details)
        if instance.started_by is not None:
            notify_users(
                [instance.started_by],
                "STATUS_CHANGE",
                f"{user.name} rejected {stage.name}",
                instance.id,
            )
    elif is_last:
        record_activity("WORKFLOW_COMPLETED", user.id, instance.content_id, details)
        if instance.started_by is not None:
            notify_users(
                [instance.started_by],
                "STATUS_CHANGE",
                f"{user.name} approved {stage.name}; workflow completed",
                instance.id,
            )
    else:
        record_activity("STAGE_APPROVED", user.id, instance.content_id, details)
        notify_stage_assignees(instance.id, stages[expected_stage + 1], user)

    db.session.commit()
    db.session.refresh(instance)
    current_app.logger.info(
        "Instance %s stage %s %s by user %s; now stage=%s status=%s",
        instance.id,
        expected_stage,
        action,
        user.id,
        instance.current_stage,
        instance.status,
    )

    publishing = None
    if instance.status == "COMPLETED":
        publishing = _on_completed(instance, user)
    return DecisionResult(approval, instance, publishing)


def _on_completed(instance: WorkflowInstance, actor: User) -> dict[str, Any] | None:
    """Mark the content approved and hand it to the publishing pipeline."""

    if instance.content_id is None:
        return None
    content = db.session.get(ContentItem, instance.content_id)
    if content is None:
        return None
    if content.status in ("DRAFT", "REVIEW"):
        content.status = "APPROVED"
        db.session.commit()

    if not current_app.config.get("AUTO_PUBLISH_ON_APPROVAL", True):
        return None

    metadata = instance_metadata(instance)
    platforms = metadata.get("platforms")
    if not platforms and content.platform:
        platforms = [content.platform.lower()]
    if not platforms:
        current_app.logger.info("Instance %s completed without target platforms", instance.id)
        return None

    options = metadata.get("publishOptions")
    try:
        return publish_content(
            content.id,
            platforms,
            options if isinstance(options, Mapping) else {},
            actor_id=actor.id,
        )
    except ApiError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Auto-publish after instance %s failed: %s", instance.id, exc.message
        )
        error = exc.message
    except Exception as exc:
        # The decision is already committed; the failure is reported, not raised.
        db.session.rollback()
        current_app.logger.exception("Auto-publish after instance %s raised", instance.id)
        error = str(exc) or exc.__class__.__name__

    record_activity(
        "AUTO_PUBLISH_FAILED",
        actor.id,
        instance.content_id,
        {"instanceId": instance.id, "error": error},
    )
    db.session.commit()
    return None


def list_pending(user: User) -> list[WorkflowInstance]:
    """Instances whose current stage awaits ``user`` and which they have not decided yet."""

    stage = StageDefinition
    already_decided = exists().where(
        Approval.instance_id == WorkflowInstance.id,
        Approval.stage_id == stage.id,
        Approval.user_id == user.id,
    )
    return (
        WorkflowInstance.query.join(
            stage,
            and_(
                stage.workflow_id == WorkflowInstance.workflow_id,
                stage.order == WorkflowInstance.current_stage,
            ),
        )
        .filter(
            WorkflowInstance.status == "IN_PROGRESS",
            or_(stage.assignee_id == user.id, stage.assignee_role == user.role),
            ~already_decided,
        )
        .order_by(WorkflowInstance.started_at.asc(), WorkflowInstance.id.asc())
        .all()
    )
