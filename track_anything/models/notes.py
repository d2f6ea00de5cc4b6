"""Pydantic models for chart notes"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Note(BaseModel):
    """Note row; annotates an event's chart at start_date"""

    id: str
    created_at: datetime
    updated_at: datetime
    title: str
    description: Optional[str] = None
    event_id: str
    start_date: datetime
    user_id: Optional[str] = None


class NoteInsert(BaseModel):
    """Payload for creating a note"""

    title: str
    description: Optional[str] = None
    event_id: str
    start_date: datetime = Field(default_factory=_utc_now)
    user_id: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator('description')
    @classmethod
    def blank_description_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class NoteUpdate(BaseModel):
    """Partial update; only explicitly set fields are sent"""

    title: Optional[str] = None
    description: Optional[str] = None
    event_id: Optional[str] = None
    start_date: Optional[datetime] = None
