"""
Ops (/admin) request/response schemas.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BroadcastRequest(BaseModel):
    template_name: str = Field(min_length=1)
    dispatch_type: str = Field(default="broadcast", min_length=1, max_length=32)
    body_params: list[str] | None = None


class SystemEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    level: str
    event_type: str
    contact_number: str | None = None
    payload: dict[str, Any] | None = None
    created_at: datetime
