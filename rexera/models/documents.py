"""
Document request models
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .enums import DocumentStatus, DocumentType


class CreateDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    workflow_id: UUID
    filename: str = Field(min_length=1, max_length=255)
    url: str = Field(min_length=1)
    file_size_bytes: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = Field(default=None, max_length=100)
    document_type: DocumentType = DocumentType.WORKING
    tags: list[str] = Field(default_factory=list)
    upload_source: Optional[str] = Field(default=None, max_length=50)
    status: DocumentStatus = DocumentStatus.PENDING
    metadata: dict[str, Any] = Field(default_factory=dict)
    deliverable_data: dict[str, Any] = Field(default_factory=dict)


class UpdateDocument(BaseModel):
    """Partial update; a change_summary starts a new version"""
    model_config = ConfigDict(extra="forbid")

    filename: Optional[str] = Field(default=None, min_length=1, max_length=255)
    url: Optional[str] = Field(default=None, min_length=1)
    file_size_bytes: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = Field(default=None, max_length=100)
    document_type: Optional[DocumentType] = None
    tags: Optional[list[str]] = None
    status: Optional[DocumentStatus] = None
    metadata: Optional[dict[str, Any]] = None
    deliverable_data: Optional[dict[str, Any]] = None
    change_summary: Optional[str] = Field(default=None, min_length=1, max_length=1000)


class CreateDocumentVersion(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(min_length=1)
    change_summary: str = Field(min_length=1, max_length=1000)
    filename: Optional[str] = Field(default=None, min_length=1, max_length=255)
    file_size_bytes: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = Field(default=None, max_length=100)
    metadata: dict[str, Any] = Field(default_factory=dict)
