"""
Services métier (audit, notifications, workflows, tâches, webhook n8n).
"""

from .audit import AuditLogger, audit_logger
from .notifications import NotificationService, notification_service
from .tasks import TaskService, task_service
from .webhook_processor import WebhookProcessingError, WebhookProcessor, webhook_processor
from .workflows import WorkflowService, workflow_service

__all__ = [
    "AuditLogger",
    "audit_logger",
    "NotificationService",
    "notification_service",
    "TaskService",
    "task_service",
    "WebhookProcessingError",
    "WebhookProcessor",
    "webhook_processor",
    "WorkflowService",
    "workflow_service",
]
