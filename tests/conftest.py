"""
Shared pytest fixtures.

The API is exercised through FastAPI's TestClient with every repository,
service and outbound client replaced by AsyncMock fakes; no database, Redis
or n8n instance is needed.
"""

import os
from datetime import datetime, timezone
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Ensure test environment before the settings singleton is built
os.environ["ENVIRONMENT"] = "test"
os.environ["SKIP_AUTH"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["N8N_BASE_URL"] = ""
os.environ["N8N_API_KEY"] = ""
os.environ["N8N_WEBHOOK_SECRET"] = ""
os.environ["CRON_SECRET"] = ""
os.environ["SUPABASE_URL"] = ""
os.environ["CORS_ALLOWED_ORIGINS"] = "http://localhost:3000,http://127.0.0.1:3000"

from rexera.api import create_app  # noqa: E402
from rexera.api import dependencies as deps  # noqa: E402
from rexera.api.auth import get_current_user  # noqa: E402
from rexera.clients.database import Database  # noqa: E402
from rexera.clients.n8n import N8nClient  # noqa: E402
from rexera.clients.redis_client import RedisClient  # noqa: E402
from rexera.models.enums import UserType  # noqa: E402
from rexera.models.users import AuthUser  # noqa: E402
from rexera.repositories import (  # noqa: E402
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
)
from rexera.services import (  # noqa: E402
    AuditLogger,
    NotificationService,
    TaskService,
    WebhookProcessor,
    WorkflowService,
)

HIL_USER_ID = "284219ff-3a1f-4e86-9ea4-3536f940451f"
OTHER_HIL_USER_ID = "7d0f5a1e-2b7c-4c1a-9f3e-5a6b7c8d9e0f"
CLIENT_USER_ID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"
CLIENT_ID = "c0ffee00-1111-4222-8333-444455556666"
OTHER_CLIENT_ID = "deadbeef-1111-4222-8333-444455556666"
WORKFLOW_ID = "0a1b2c3d-4e5f-4a6b-8c7d-8e9f0a1b2c3d"
TASK_ID = "11111111-2222-4333-8444-555566667777"
COUNTERPARTY_ID = "99999999-8888-4777-8666-555544443333"
NOTE_ID = "12121212-3434-4565-8787-909090909090"
AGENT_ID = "abababab-cdcd-4efe-8a8a-bcbcbcbcbcbc"
COMMUNICATION_ID = "c0c0c0c0-1d1d-4e2e-8f3f-404040404040"
DOCUMENT_ID = "d0d0d0d0-5e5e-4f6f-8a7a-808080808080"


# ============================================================================
# USERS
# ============================================================================


@pytest.fixture
def hil_user() -> AuthUser:
    return AuthUser(
        id=HIL_USER_ID,
        email="operator@rexera.com",
        user_type=UserType.HIL_USER,
        role="HIL_ADMIN",
    )


@pytest.fixture
def other_hil_user() -> AuthUser:
    return AuthUser(
        id=OTHER_HIL_USER_ID,
        email="second@rexera.com",
        user_type=UserType.HIL_USER,
        role="HIL_OPERATOR",
    )


@pytest.fixture
def client_user() -> AuthUser:
    return AuthUser(
        id=CLIENT_USER_ID,
        email="buyer@acme-title.com",
        user_type=UserType.CLIENT_USER,
        role="CLIENT_ADMIN",
        company_id=CLIENT_ID,
    )


# ============================================================================
# ROWS
# ============================================================================


@pytest.fixture
def workflow_row() -> dict[str, Any]:
    return {
        "id": WORKFLOW_ID,
        "human_readable_id": "1042",
        "workflow_type": "PAYOFF_REQUEST",
        "client_id": CLIENT_ID,
        "title": "Payoff for 12 Main St",
        "description": None,
        "status": "NOT_STARTED",
        "priority": "NORMAL",
        "metadata": {},
        "created_by": HIL_USER_ID,
        "assigned_to": None,
        "due_date": None,
        "completed_at": None,
        "n8n_execution_id": None,
        "n8n_status": None,
        "n8n_started_at": None,
        "interrupt_count": 0,
    }


@pytest.fixture
def task_row() -> dict[str, Any]:
    return {
        "id": TASK_ID,
        "workflow_id": WORKFLOW_ID,
        "title": "Request payoff statement",
        "task_type": "request_payoff",
        "executor_type": "AI",
        "status": "IN_PROGRESS",
        "priority": "NORMAL",
        "sla_hours": 24,
        "sla_status": "ON_TIME",
        "interrupt_type": None,
        "started_at": datetime(2025, 7, 1, 9, 0, tzinfo=timezone.utc),
        "completed_at": None,
        "output_data": {},
        "workflow": {"id": WORKFLOW_ID, "title": "Payoff for 12 Main St", "client_id": CLIENT_ID},
        "agent": None,
    }


@pytest.fixture
def counterparty_row() -> dict[str, Any]:
    return {
        "id": COUNTERPARTY_ID,
        "name": "First National Lending",
        "type": "lender",
        "email": "payoffs@fnl.example",
        "phone": None,
        "address": None,
        "contact_info": {},
    }


@pytest.fixture
def note_row() -> dict[str, Any]:
    return {
        "id": NOTE_ID,
        "workflow_id": WORKFLOW_ID,
        "author_id": HIL_USER_ID,
        "content": "Lender asked for a signed authorization",
        "priority": "HIGH",
        "mentions": [],
        "parent_note_id": None,
        "is_resolved": False,
    }


@pytest.fixture
def communication_row() -> dict[str, Any]:
    return {
        "id": COMMUNICATION_ID,
        "workflow_id": WORKFLOW_ID,
        "thread_id": None,
        "sender_id": HIL_USER_ID,
        "recipient_email": "payoffs@fnl.example",
        "subject": "Payoff statement for 12 Main St",
        "body": "Please send the payoff statement.",
        "communication_type": "email",
        "direction": "OUTBOUND",
        "status": "SENT",
        "metadata": {},
        "workflow_client_id": CLIENT_ID,
    }


@pytest.fixture
def document_row() -> dict[str, Any]:
    return {
        "id": DOCUMENT_ID,
        "workflow_id": WORKFLOW_ID,
        "filename": "payoff-statement.pdf",
        "url": "https://files.example/payoff-statement.pdf",
        "file_size_bytes": 48213,
        "mime_type": "application/pdf",
        "document_type": "DELIVERABLE",
        "tags": ["payoff"],
        "status": "COMPLETED",
        "metadata": {},
        "version": 1,
        "change_summary": None,
        "created_by": HIL_USER_ID,
        "workflow_client_id": CLIENT_ID,
    }


# ============================================================================
# REPOSITORIES, SERVICES AND CLIENTS
# ============================================================================


@pytest.fixture
def workflow_repo() -> AsyncMock:
    return AsyncMock(spec=WorkflowRepository)


@pytest.fixture
def task_repo() -> AsyncMock:
    return AsyncMock(spec=TaskRepository)


@pytest.fixture
def counterparty_repo() -> AsyncMock:
    return AsyncMock(spec=CounterpartyRepository)


@pytest.fixture
def note_repo() -> AsyncMock:
    return AsyncMock(spec=HilNoteRepository)


@pytest.fixture
def notification_repo() -> AsyncMock:
    return AsyncMock(spec=NotificationRepository)


@pytest.fixture
def audit_repo() -> AsyncMock:
    return AsyncMock(spec=AuditRepository)


@pytest.fixture
def agent_repo() -> AsyncMock:
    return AsyncMock(spec=AgentRepository)


@pytest.fixture
def user_repo() -> AsyncMock:
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def client_repo() -> AsyncMock:
    return AsyncMock(spec=ClientRepository)


@pytest.fixture
def communication_repo() -> AsyncMock:
    repo = AsyncMock(spec=CommunicationRepository)
    repo.add_email_metadata.return_value = {}
    return repo


@pytest.fixture
def document_repo() -> AsyncMock:
    return AsyncMock(spec=DocumentRepository)


@pytest.fixture
def audit_logger() -> AsyncMock:
    return AsyncMock(spec=AuditLogger)


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock(spec=NotificationService)


@pytest.fixture
def n8n() -> MagicMock:
    client = MagicMock(spec=N8nClient)
    client.enabled = False
    client.config_status.return_value = {
        "enabled": False,
        "baseUrl": None,
        "hasApiKey": False,
        "hasWebhookUrl": False,
        "workflowIds": {},
    }
    return client


@pytest.fixture
def database() -> MagicMock:
    db = MagicMock(spec=Database)
    db.ping = AsyncMock(return_value=True)
    return db


@pytest.fixture
def redis() -> MagicMock:
    client = MagicMock(spec=RedisClient)
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def workflow_service(workflow_repo, n8n, audit_logger) -> WorkflowService:
    return WorkflowService(workflows=workflow_repo, n8n=n8n, audit=audit_logger)


@pytest.fixture
def task_service(task_repo, workflow_repo, audit_logger) -> TaskService:
    return TaskService(tasks=task_repo, workflows=workflow_repo, audit=audit_logger)


@pytest.fixture
def webhook_processor(workflow_repo, task_repo, agent_repo, notifier, audit_logger) -> WebhookProcessor:
    return WebhookProcessor(
        workflows=workflow_repo,
        tasks=task_repo,
        agents=agent_repo,
        notifications=notifier,
        audit=audit_logger,
    )


# ============================================================================
# APPLICATION
# ============================================================================


@pytest.fixture
def app(
    hil_user,
    workflow_repo,
    task_repo,
    counterparty_repo,
    note_repo,
    notification_repo,
    audit_repo,
    agent_repo,
    user_repo,
    client_repo,
    communication_repo,
    document_repo,
    audit_logger,
    notifier,
    n8n,
    database,
    redis,
    workflow_service,
    task_service,
    webhook_processor,
) -> Generator[FastAPI, None, None]:
    """Application wired to the fakes; the caller is a HIL operator by default."""
    application = create_app()
    overrides = application.dependency_overrides

    overrides[get_current_user] = lambda: hil_user

    overrides[deps.get_database] = lambda: database
    overrides[deps.get_redis] = lambda: redis
    overrides[deps.get_n8n_client] = lambda: n8n

    overrides[deps.get_workflow_repository] = lambda: workflow_repo
    overrides[deps.get_task_repository] = lambda: task_repo
    overrides[deps.get_counterparty_repository] = lambda: counterparty_repo
    overrides[deps.get_note_repository] = lambda: note_repo
    overrides[deps.get_notification_repository] = lambda: notification_repo
    overrides[deps.get_audit_repository] = lambda: audit_repo
    overrides[deps.get_agent_repository] = lambda: agent_repo
    overrides[deps.get_user_repository] = lambda: user_repo
    overrides[deps.get_client_repository] = lambda: client_repo
    overrides[deps.get_communication_repository] = lambda: communication_repo
    overrides[deps.get_document_repository] = lambda: document_repo

    overrides[deps.get_audit_logger] = lambda: audit_logger
    overrides[deps.get_notification_service] = lambda: notifier
    overrides[deps.get_workflow_service] = lambda: workflow_service
    overrides[deps.get_task_service] = lambda: task_service
    overrides[deps.get_webhook_processor] = lambda: webhook_processor

    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """Test client without lifespan (no pool, no security check)."""
    return TestClient(app)


@pytest.fixture
def login(app):
    """Switch the calling user: login(client_user)."""

    def _login(user: AuthUser) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    return _login
