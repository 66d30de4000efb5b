"""
Audit event models
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .enums import ActorType, AuditAction


class AuditEvent(BaseModel):
    """
    One row of audit_events.

    actor_id is the user id for humans, the agent id for agents and a free
    label ("n8n", "sla_monitor") for the system.
    """
    model_config = ConfigDict(extra="forbid")

    actor_type: ActorType
    actor_id: str = Field(min_length=1, max_length=255)
    actor_name: Optional[str] = Field(default=None, max_length=255)
    event_type: str = Field(min_length=1, max_length=100)
    action: AuditAction
    resource_type: str = Field(min_length=1, max_length=100)
    resource_id: UUID
    workflow_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    event_data: dict[str, Any] = Field(default_factory=dict)


class CreateAuditEvent(BaseModel):
    """Body of POST /api/audit-events (actor defaults to the caller)"""
    model_config = ConfigDict(extra="forbid")

    actor_type: ActorType = ActorType.HUMAN
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    event_type: str = Field(min_length=1, max_length=100)
    action: AuditAction
    resource_type: str = Field(min_length=1, max_length=100)
    resource_id: UUID
    workflow_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    event_data: dict[str, Any] = Field(default_factory=dict)


class BatchAuditEvents(BaseModel):
    events: list[CreateAuditEvent] = Field(min_length=1, max_length=100)
