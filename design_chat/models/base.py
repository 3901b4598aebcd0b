from datetime import datetime
from beanie import Document
from pydantic import Field


class TimestampedDocument(Document):
    """Base model for all database documents"""
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()
