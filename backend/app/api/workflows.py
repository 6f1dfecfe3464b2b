"""REST API endpoints for workflow templates and approval instances."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from flask import Blueprint, request

from ..errors import ValidationError, success
from ..extensions import db
from ..models.auth import USER_ROLES, User
from ..models.workflow import (
    DECISION_ACTIONS,
    STAGE_TYPES,
    TEMPLATE_TYPES,
    Approval,
    StageDefinition,
    WorkflowInstance,
    WorkflowTemplate,
)
from ..utils.auth import current_user, require_token
from ..utils.clock import isoformat
from ..workflow import engine

bp = Blueprint("workflows", __name__)

MAX_STAGES = 50


def _serialize_stage(stage: StageDefinition) -> dict[str, Any]:
    try:
        config = json.loads(stage.config_json or "{}")
    except (TypeError, ValueError):
        config = {}
    return {
        "id": stage.id,
        "name": stage.name,
        "order": stage.order,
        "type": stage.type,
        "assigneeId": stage.assignee_id,
        "assigneeRole": stage.assignee_role,
        "config": config,
    }


def _serialize_template(template: WorkflowTemplate) -> dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "type": template.type,
        "createdBy": template.created_by,
        "createdAt": isoformat(template.created_at),
        "stages": [_serialize_stage(stage) for stage in template.stages],
    }


def _serialize_approval(approval: Approval) -> dict[str, Any]:
    return {
        "id": approval.id,
        "instanceId": approval.instance_id,
        "stageId": approval.stage_id,
        "userId": approval.user_id,
        "action": approval.action,
        "comments": approval.comments,
        "createdAt": isoformat(approval.created_at),
    }


def _serialize_instance(
    instance: WorkflowInstance, *, include_approvals: bool = False
) -> dict[str, Any]:
    stages = instance.workflow.stages
    current = stages[instance.current_stage] if instance.current_stage < len(stages) else None
    payload: dict[str, Any] = {
        "id": instance.id,
        "workflowId": instance.workflow_id,
        "workflowName": instance.workflow.name,
        "contentId": instance.content_id,
        "currentStage": instance.current_stage,
        "currentStageId": current.id if current is not None else None,
        "currentStageName": current.name if current is not None else None,
        "stageCount": len(stages),
        "status": instance.status,
        "metadata": engine.instance_metadata(instance),
        "startedBy": instance.started_by,
        "startedAt": isoformat(instance.started_at),
        "completedAt": isoformat(instance.completed_at),
    }
    if include_approvals:
        payload["approvals"] = [_serialize_approval(item) for item in instance.approvals]
    return payload


def _validate_stage(index: int, stage: Any) -> tuple[dict[str, Any], list[str]]:
    label = f"stages[{index}]"
    if not isinstance(stage, dict):
        return {}, [f"{label} must be an object"]

    errors: list[str] = []
    name = (stage.get("name") or "").strip() if isinstance(stage.get("name"), str) else ""
    if not name:
        errors.append(f"{label}.name is required")

    stage_type = stage.get("type") or "APPROVAL"
    if stage_type not in STAGE_TYPES:
        errors.append(f"{label}.type must be one of {', '.join(STAGE_TYPES)}")

    assignee_role = stage.get("assigneeRole")
    if assignee_role is not None and assignee_role not in USER_ROLES:
        errors.append(f"{label}.assigneeRole must be one of {', '.join(USER_ROLES)}")

    assignee_id = stage.get("assigneeId")
    if assignee_id is not None:
        if isinstance(assignee_id, bool) or not isinstance(assignee_id, int):
            errors.append(f"{label}.assigneeId must be an integer")
        elif db.session.get(User, assignee_id) is None:
            errors.append(f"{label}.assigneeId does not reference a user")

    config = stage.get("config")
    if config is not None and not isinstance(config, dict):
        errors.append(f"{label}.config must be an object")

    data = {
        "name": name,
        "type": stage_type,
        "assignee_id": assignee_id,
        "assignee_role": assignee_role,
        "config": config or {},
    }
    return data, errors


def _validate_template_payload(payload: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Validate and normalize an incoming template definition."""

    errors: list[str] = []
    name = payload.get("name")
    name = name.strip() if isinstance(name, str) else ""
    if not name:
        errors.append("name is required")

    template_type = payload.get("type") or "CONTENT_APPROVAL"
    if template_type not in TEMPLATE_TYPES:
        errors.append(f"type must be one of {', '.join(TEMPLATE_TYPES)}")

    description = payload.get("description")
    if description is not None and not isinstance(description, str):
        errors.append("description must be a string")

    raw_stages = payload.get("stages")
    stages: list[dict[str, Any]] = []
    if not isinstance(raw_stages, list):
        errors.append("stages must be an array")
    elif len(raw_stages) > MAX_STAGES:
        errors.append(f"stages must not contain more than {MAX_STAGES} entries")
    else:
        for index, raw in enumerate(raw_stages):
            stage, stage_errors = _validate_stage(index, raw)
            errors.extend(stage_errors)
            stages.append(stage)

    data = {
        "name": name,
        "description": description,
        "type": template_type,
        "stages": stages,
    }
    return data, errors


def _json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True, force=True)
    return payload if isinstance(payload, dict) else {}


@bp.post("/workflows/templates")
@require_token("ADMIN", "MANAGER")
def create_template() -> tuple[object, int]:
    data, errors = _validate_template_payload(_json_body())
    if errors:
        raise ValidationError("; ".join(errors))

    template = engine.create_template(
        data["name"], data["description"], data["type"], data["stages"], current_user().id
    )
    return success(_serialize_template(template), HTTPStatus.CREATED)


@bp.get("/workflows/templates")
@require_token()
def list_templates() -> tuple[object, int]:
    templates = WorkflowTemplate.query.order_by(WorkflowTemplate.created_at.desc()).all()
    return success([_serialize_template(template) for template in templates])


@bp.get("/workflows/templates/<int:workflow_id>")
@require_token()
def get_template(workflow_id: int) -> tuple[object, int]:
    return success(_serialize_template(engine.get_template_or_404(workflow_id)))


@bp.post("/workflows/start")
@require_token()
def start_workflow() -> tuple[object, int]:
    payload = _json_body()
    workflow_id = payload.get("workflowId")
    content_id = payload.get("contentId")
    metadata = payload.get("metadata")

    if isinstance(workflow_id, bool) or not isinstance(workflow_id, int):
        raise ValidationError("workflowId must be an integer")
    if content_id is not None and (isinstance(content_id, bool) or not isinstance(content_id, int)):
        raise ValidationError("contentId must be an integer")
    if metadata is not None and not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object")

    instance = engine.start_workflow(workflow_id, content_id, current_user(), metadata)
    return success(_serialize_instance(instance), HTTPStatus.CREATED)


@bp.post("/workflows/approve/<int:instance_id>")
@require_token()
def approve(instance_id: int) -> tuple[object, int]:
    payload = _json_body()
    action = payload.get("action")
    stage_id = payload.get("stageId")
    comments = payload.get("comments")

    if action not in DECISION_ACTIONS:
        raise ValidationError(f"action must be one of {', '.join(DECISION_ACTIONS)}")
    if isinstance(stage_id, bool) or not isinstance(stage_id, int):
        raise ValidationError("stageId must be an integer")
    if comments is not None and not isinstance(comments, str):
        raise ValidationError("comments must be a string")

    result = engine.record_decision(instance_id, stage_id, current_user(), action, comments)
    data: dict[str, Any] = {
        "approval": _serialize_approval(result.approval),
        "instance": _serialize_instance(result.instance),
    }
    if result.publishing is not None:
        data["publishing"] = result.publishing
    return success(data)


@bp.get("/workflows/pending")
@require_token()
def pending() -> tuple[object, int]:
    instances = engine.list_pending(current_user())
    return success([_serialize_instance(instance) for instance in instances])


@bp.get("/workflows/instances/<int:instance_id>")
@require_token()
def get_instance(instance_id: int) -> tuple[object, int]:
    instance = engine.get_instance_or_404(instance_id)
    return success(_serialize_instance(instance, include_approvals=True))
