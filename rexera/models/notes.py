"""
HIL note request models
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .enums import PriorityLevel


class CreateHilNote(BaseModel):
    model_config = ConfigDict(extra="forbid")

    workflow_id: str = Field(min_length=1, description="Workflow UUID or human readable id")
    content: str = Field(min_length=1, max_length=10000)
    priority: PriorityLevel = PriorityLevel.NORMAL
    mentions: list[UUID] = Field(default_factory=list)
    parent_note_id: Optional[UUID] = None


class UpdateHilNote(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    priority: Optional[PriorityLevel] = None
    is_resolved: Optional[bool] = None
    mentions: Optional[list[UUID]] = None


class ReplyHilNote(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(min_length=1, max_length=10000)
    mentions: list[UUID] = Field(default_factory=list)
