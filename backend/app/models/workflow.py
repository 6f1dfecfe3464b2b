"""Workflow templates, their stages, running instances and approvals."""

from __future__ import annotations

from ..extensions import db
from ..utils.clock import utcnow

TEMPLATE_TYPES = ("CONTENT_APPROVAL", "TASK_SEQUENCE", "CUSTOM")
STAGE_TYPES = ("APPROVAL", "TASK", "NOTIFICATION", "AUTO")
INSTANCE_STATUSES = ("PENDING", "IN_PROGRESS", "APPROVED", "REJECTED", "COMPLETED")
TERMINAL_STATUSES = ("COMPLETED", "REJECTED")
DECISION_ACTIONS = ("APPROVED", "REJECTED", "COMPLETED")


class WorkflowTemplate(db.Model):
    """An ordered list of stages that content moves through."""

    __tablename__ = "workflow_templates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(30), nullable=False, default="CONTENT_APPROVAL")
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    stages = db.relationship(
        "StageDefinition",
        order_by="StageDefinition.order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<WorkflowTemplate {self.name!r}>"


class StageDefinition(db.Model):
    """A single stage of a template; ``order`` is contiguous from zero."""

    __tablename__ = "workflow_stages"
    __table_args__ = (db.UniqueConstraint("workflow_id", "order", name="uq_stage_order"),)

    id = db.Column(db.Integer, primary_key=True)
    workflow_id = db.Column(db.Integer, db.ForeignKey("workflow_templates.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    order = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(20), nullable=False, default="APPROVAL")
    assignee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    assignee_role = db.Column(db.String(20), nullable=True)
    config_json = db.Column(db.Text, nullable=False, default="{}")


class WorkflowInstance(db.Model):
    """One execution of a template against a content item."""

    __tablename__ = "workflow_instances"

    id = db.Column(db.Integer, primary_key=True)
    workflow_id = db.Column(db.Integer, db.ForeignKey("workflow_templates.id"), nullable=False)
    content_id = db.Column(db.Integer, db.ForeignKey("content_items.id"), nullable=True)
    current_stage = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default="PENDING", index=True)
    metadata_json = db.Column(db.Text, nullable=False, default="{}")
    started_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    started_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    workflow = db.relationship(WorkflowTemplate, lazy="joined")
    approvals = db.relationship(
        "Approval", order_by="Approval.id", lazy="selectin", viewonly=True
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<WorkflowInstance {self.id} stage={self.current_stage} {self.status}>"


class Approval(db.Model):
    """Append-only record of a decision taken on a stage."""

    __tablename__ = "approvals"

    id = db.Column(db.Integer, primary_key=True)
    instance_id = db.Column(db.Integer, db.ForeignKey("workflow_instances.id"), nullable=False)
    stage_id = db.Column(db.Integer, db.ForeignKey("workflow_stages.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    action = db.Column(db.String(20), nullable=False)
    comments = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
