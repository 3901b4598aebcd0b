import uuid
from enum import Enum
from datetime import datetime
from pydantic import BaseModel as PydanticBaseModel, Field
from beanie import Indexed
from design_chat.models.base import TimestampedDocument


class DesignMessageRole(str, Enum):
    """Enum for message roles"""
    USER = "user"
    ASSISTANT = "assistant"


class DesignMessage(TimestampedDocument):
    """Append-only message in a design session"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    session_id: Indexed(str)
    role: DesignMessageRole
    content: str

    class Settings:
        name = "design_messages"
        indexes = [
            [("session_id", 1), ("created_at", 1)],
        ]

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "m7308965-bfe5-4d3b-a4be-f555d972a2c6",
                "session_id": "c7308965-bfe5-4d3b-a4be-f555d972a2c6",
                "role": "user",
                "content": "How should we structure the export endpoint?",
                "created_at": "2026-02-01T15:30:00Z",
                "updated_at": "2026-02-01T15:30:00Z"
            }
        }


class DesignMessageRead(PydanticBaseModel):
    """Schema for Message response"""
    id: str
    session_id: str
    role: DesignMessageRole
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class CreateDesignMessage(PydanticBaseModel):
    """Schema for appending a message to a design session"""
    role: DesignMessageRole
    content: str
