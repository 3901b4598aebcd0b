import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel as PydanticBaseModel, Field
from design_chat.models.base import TimestampedDocument


class DesignSession(TimestampedDocument):
    """Conversation session document.

    Design sessions have no workspace; ``workspace_id`` is only set for
    sessions that run inside a provisioned workspace.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    workspace_id: Optional[str] = None
    executor: Optional[str] = None

    class Settings:
        name = "sessions"

    class Config:
        populate_by_name = True


class DesignSessionRead(PydanticBaseModel):
    """Schema for Session response"""
    id: str
    workspace_id: Optional[str] = None
    executor: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
