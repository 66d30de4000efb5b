"""
n8n webhook payload
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class N8nEventType(str, Enum):
    WORKFLOW_STARTED = "workflow_started"
    TASK_ASSIGNED_TO_AGENT = "task_assigned_to_agent"
    AGENT_TASK_COMPLETED = "agent_task_completed"
    AGENT_TASK_FAILED = "agent_task_failed"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"
    TASK_INTERRUPTED = "task_interrupted"
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_FAILED = "workflow_failed"
    ERROR_OCCURRED = "error_occurred"


class N8nWebhookEvent(BaseModel):
    """
    Event posted by n8n.

    workflowId (or data.rexeraWorkflowId / data.workflowId) names the Rexera
    workflow, either by UUID or by human readable id.
    """
    model_config = ConfigDict(extra="allow")

    event_type: N8nEventType = Field(alias="eventType")
    execution_id: Optional[str] = Field(default=None, alias="executionId")
    workflow_id: Optional[str] = Field(default=None, alias="workflowId")
    timestamp: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def rexera_workflow_id(self) -> Optional[str]:
        value = (
            self.data.get("rexeraWorkflowId")
            or self.data.get("workflowId")
            or self.workflow_id
        )
        return str(value) if value is not None else None

    @property
    def task_id(self) -> Optional[str]:
        value = self.data.get("taskId")
        return str(value) if value is not None else None
