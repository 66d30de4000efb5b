"""
Agent request models
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class UpdateAgent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_active: Optional[bool] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    configuration: Optional[dict[str, Any]] = None
    capabilities: Optional[list[str]] = None
