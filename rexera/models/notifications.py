"""
Notification request models
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .enums import NotificationType, PriorityLevel


class CreateNotification(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: UUID
    type: NotificationType
    priority: PriorityLevel = PriorityLevel.NORMAL
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=2000)
    action_url: Optional[str] = Field(default=None, max_length=500)
    metadata: dict[str, Any] = Field(default_factory=dict)
