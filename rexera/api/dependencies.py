"""
Fournisseurs de dépendances FastAPI.

Les routes reçoivent repositories, services et clients via Depends(); les
tests les remplacent avec app.dependency_overrides.
"""

from ..clients.database import Database, database
from ..clients.n8n import N8nClient, n8n_client
from ..clients.redis_client import RedisClient, redis_client
from ..clients.supabase_auth import SupabaseAuthClient, supabase_auth_client
from ..repositories import (
    AgentRepository,
    AuditRepository,
    ClientRepository,
    CommunicationRepository,
    CounterpartyRepository,
    DocumentRepository,
    HilNoteRepository,
    NotificationRepository,
    TaskRepository,
    UserRepository,
    WorkflowRepository,
    agent_repository,
    audit_repository,
    client_repository,
    communication_repository,
    counterparty_repository,
    document_repository,
    hil_note_repository,
    notification_repository,
    task_repository,
    user_repository,
    workflow_repository,
)
from ..services import (
    AuditLogger,
    NotificationService,
    TaskService,
    WebhookProcessor,
    WorkflowService,
    audit_logger,
    notification_service,
    task_service,
    webhook_processor,
    workflow_service,
)

# =============================================================================
# Clients
# =============================================================================


def get_database() -> Database:
    return database


def get_redis() -> RedisClient:
    return redis_client


def get_n8n_client() -> N8nClient:
    return n8n_client


def get_supabase_auth() -> SupabaseAuthClient:
    return supabase_auth_client


# =============================================================================
# Repositories
# =============================================================================


def get_workflow_repository() -> WorkflowRepository:
    return workflow_repository


def get_task_repository() -> TaskRepository:
    return task_repository


def get_counterparty_repository() -> CounterpartyRepository:
    return counterparty_repository


def get_note_repository() -> HilNoteRepository:
    return hil_note_repository


def get_notification_repository() -> NotificationRepository:
    return notification_repository


def get_audit_repository() -> AuditRepository:
    return audit_repository


def get_agent_repository() -> AgentRepository:
    return agent_repository


def get_user_repository() -> UserRepository:
    return user_repository


def get_client_repository() -> ClientRepository:
    return client_repository


def get_communication_repository() -> CommunicationRepository:
    return communication_repository


def get_document_repository() -> DocumentRepository:
    return document_repository


# =============================================================================
# Services
# =============================================================================


def get_audit_logger() -> AuditLogger:
    return audit_logger


def get_notification_service() -> NotificationService:
    return notification_service


def get_task_service() -> TaskService:
    return task_service


def get_workflow_service() -> WorkflowService:
    return workflow_service


def get_webhook_processor() -> WebhookProcessor:
    return webhook_processor
