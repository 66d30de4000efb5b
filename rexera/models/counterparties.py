"""
Counterparty request models
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .enums import CounterpartyType


class CreateCounterparty(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    type: CounterpartyType
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)
    contact_info: dict[str, Any] = Field(default_factory=dict)


class UpdateCounterparty(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[CounterpartyType] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)
    contact_info: Optional[dict[str, Any]] = None
