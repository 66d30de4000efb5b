"""
Communication request models
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .enums import CommunicationDirection, CommunicationStatus, CommunicationType


class EmailMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message_id: Optional[str] = Field(default=None, max_length=500)
    in_reply_to: Optional[str] = Field(default=None, max_length=500)
    email_references: list[str] = Field(default_factory=list)
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    headers: dict[str, Any] = Field(default_factory=dict)


class PhoneMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phone_number: Optional[str] = Field(default=None, max_length=50)
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    call_recording_url: Optional[str] = None
    transcript: Optional[str] = None


class CreateCommunication(BaseModel):
    model_config = ConfigDict(extra="forbid")

    workflow_id: Optional[UUID] = None
    thread_id: Optional[UUID] = None
    recipient_email: Optional[EmailStr] = None
    subject: Optional[str] = Field(default=None, max_length=500)
    body: str = Field(min_length=1)
    communication_type: CommunicationType = CommunicationType.EMAIL
    direction: CommunicationDirection = CommunicationDirection.OUTBOUND
    metadata: dict[str, Any] = Field(default_factory=dict)
    email_metadata: Optional[EmailMetadata] = None
    phone_metadata: Optional[PhoneMetadata] = None


class UpdateCommunication(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[CommunicationStatus] = None
    metadata: Optional[dict[str, Any]] = None


class ReplyCommunication(BaseModel):
    model_config = ConfigDict(extra="forbid")

    recipient_email: EmailStr
    body: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ForwardCommunication(BaseModel):
    model_config = ConfigDict(extra="forbid")

    recipient_email: EmailStr
    subject: str = Field(min_length=1, max_length=500)
    body: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)
