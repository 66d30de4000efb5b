"""
Repositories PostgreSQL (SQL brut via asyncpg).
"""

from .agents import AgentRepository, agent_repository
from .audit import AuditRepository, audit_repository
from .clients import ClientRepository, client_repository
from .communications import CommunicationRepository, communication_repository
from .counterparties import CounterpartyRepository, counterparty_repository
from .documents import DocumentRepository, document_repository
from .notes import HilNoteRepository, hil_note_repository
from .notifications import NotificationRepository, notification_repository
from .tasks import TaskRepository, task_repository
from .users import UserRepository, user_repository
from .workflows import WorkflowRepository, workflow_repository

__all__ = [
    "AgentRepository",
    "agent_repository",
    "AuditRepository",
    "audit_repository",
    "ClientRepository",
    "client_repository",
    "CommunicationRepository",
    "communication_repository",
    "CounterpartyRepository",
    "counterparty_repository",
    "DocumentRepository",
    "document_repository",
    "HilNoteRepository",
    "hil_note_repository",
    "NotificationRepository",
    "notification_repository",
    "TaskRepository",
    "task_repository",
    "UserRepository",
    "user_repository",
    "WorkflowRepository",
    "workflow_repository",
]
