"""
Domain enums and request models
"""

from .enums import (
    ActorType,
    AuditAction,
    CounterpartyType,
    ExecutorType,
    InterruptType,
    N8nStatus,
    NotificationType,
    PriorityLevel,
    SlaStatus,
    TaskStatus,
    UserType,
    WorkflowCounterpartyStatus,
    WorkflowStatus,
    WorkflowType,
    is_counterparty_allowed_for_workflow,
)
from .audit import AuditEvent
from .users import AuthUser
from .webhooks import N8nEventType, N8nWebhookEvent

__all__ = [
    "ActorType",
    "AuditAction",
    "AuditEvent",
    "AuthUser",
    "CounterpartyType",
    "ExecutorType",
    "InterruptType",
    "N8nEventType",
    "N8nStatus",
    "N8nWebhookEvent",
    "NotificationType",
    "PriorityLevel",
    "SlaStatus",
    "TaskStatus",
    "UserType",
    "WorkflowCounterpartyStatus",
    "WorkflowStatus",
    "WorkflowType",
    "is_counterparty_allowed_for_workflow",
]
