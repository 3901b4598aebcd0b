import uuid
from typing import Optional
from pydantic import BaseModel as PydanticBaseModel, Field
from beanie import Indexed
from design_chat.models.base import TimestampedDocument


class Task(TimestampedDocument):
    """Kanban task document.

    Tasks are owned by the tracker; this service only reads them and
    links them to their design session.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    project_id: Indexed(str)
    title: str
    description: Optional[str] = None
    design_session_id: Optional[str] = None

    class Settings:
        name = "tasks"

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "3f0c1a55-8a9e-4c62-9d0e-6b0f4a1c2d3e",
                "project_id": "96df2786-5c9d-4427-9284-0a6c37e498ba",
                "title": "Add CSV export to reports",
                "description": "Users want to download report tables as CSV.",
                "design_session_id": None,
                "created_at": "2026-01-30T09:12:00Z",
                "updated_at": "2026-01-30T09:12:00Z"
            }
        }


class TaskContext(PydanticBaseModel):
    """The task fields a design conversation needs"""
    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    design_session_id: Optional[str] = None

    class Config:
        from_attributes = True
