"""
Workflow request models
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .enums import PriorityLevel, WorkflowCounterpartyStatus, WorkflowStatus, WorkflowType


class CreateWorkflow(BaseModel):
    """Body of POST /api/workflows"""
    model_config = ConfigDict(extra="forbid")

    workflow_type: WorkflowType
    client_id: UUID
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    priority: PriorityLevel = PriorityLevel.NORMAL
    metadata: dict[str, Any] = Field(default_factory=dict)
    due_date: Optional[datetime] = None
    trigger_automation: bool = Field(
        default=False,
        description="Start the matching n8n automation right after creation",
    )


class UpdateWorkflow(BaseModel):
    """Body of PATCH /api/workflows/{id} (partial)"""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[WorkflowStatus] = None
    priority: Optional[PriorityLevel] = None
    metadata: Optional[dict[str, Any]] = None
    assigned_to: Optional[UUID] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CancelN8nExecution(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class CreateWorkflowCounterparty(BaseModel):
    model_config = ConfigDict(extra="forbid")

    counterparty_id: UUID
    status: WorkflowCounterpartyStatus = WorkflowCounterpartyStatus.PENDING


class UpdateWorkflowCounterparty(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: WorkflowCounterpartyStatus
