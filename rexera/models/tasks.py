"""
Task execution request models
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .enums import ExecutorType, InterruptType, PriorityLevel, SlaStatus, TaskStatus


class CreateTaskExecution(BaseModel):
    """One task of a bulk creation"""
    model_config = ConfigDict(extra="forbid")

    workflow_id: UUID
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    sequence_order: int = Field(ge=0)
    task_type: str = Field(min_length=1, max_length=100)
    executor_type: ExecutorType
    agent_id: Optional[UUID] = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: PriorityLevel = PriorityLevel.NORMAL
    input_data: dict[str, Any] = Field(default_factory=dict)
    sla_hours: int = Field(default=24, ge=1)
    interrupt_type: Optional[InterruptType] = None
    started_at: Optional[datetime] = None


class BulkCreateTaskExecutions(BaseModel):
    task_executions: list[CreateTaskExecution] = Field(min_length=1, max_length=100)


class UpdateTaskExecution(BaseModel):
    """Body of PATCH /api/taskExecutions/{id} (partial)"""
    model_config = ConfigDict(extra="forbid")

    status: Optional[TaskStatus] = None
    output_data: Optional[dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    execution_time_ms: Optional[int] = Field(default=None, ge=0)
    retry_count: Optional[int] = Field(default=None, ge=0)
    sla_hours: Optional[int] = Field(default=None, ge=1)
    sla_status: Optional[SlaStatus] = None
    interrupt_type: Optional[InterruptType] = None


class UpdateTaskByWorkflowAndType(UpdateTaskExecution):
    workflow_id: str = Field(min_length=1, description="Workflow UUID or human readable id")
    task_type: str = Field(min_length=1)


class ResolveInterrupt(BaseModel):
    model_config = ConfigDict(extra="forbid")

    resolution: str = Field(min_length=1, max_length=5000)
    resume: bool = Field(
        default=True,
        description="True: the task goes back to IN_PROGRESS. False: it is closed as COMPLETED",
    )
    output_data: dict[str, Any] = Field(default_factory=dict)
