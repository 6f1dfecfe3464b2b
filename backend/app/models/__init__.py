"""Database models for the TradeKeep content orchestrator."""

from .activity import Activity, Notification
from .auth import ApiToken, User
from .content import ContentAsset, ContentItem
from .publishing import PublishingRecord, ScheduledPublication
from .workflow import Approval, StageDefinition, WorkflowInstance, WorkflowTemplate

__all__ = [
    "Activity",
    "ApiToken",
    "Approval",
    "ContentAsset",
    "ContentItem",
    "Notification",
    "PublishingRecord",
    "ScheduledPublication",
    "StageDefinition",
    "User",
    "WorkflowInstance",
    "WorkflowTemplate",
]
