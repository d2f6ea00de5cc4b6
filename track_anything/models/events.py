"""Pydantic models for tracked events"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from track_anything.models.common import is_hex_color

DEFAULT_EVENT_COLOR = "#000000"


class EventType(str, Enum):
    """How logs against an event are valued"""
    COUNT = "Count"    # every log is worth 1
    SCALE = "Scale"    # integer rating 1..scale_max
    METRIC = "Metric"  # arbitrary decimal


class Event(BaseModel):
    """Event row as stored by the backend"""

    id: str
    created_at: datetime
    event_name: str
    event_type: EventType
    scale_label: Optional[str] = None
    scale_max: Optional[int] = Field(None, ge=2, le=10)
    position: int = 0
    color: str = DEFAULT_EVENT_COLOR
    user_id: Optional[str] = None


class EventInsert(BaseModel):
    """Payload for creating an event"""

    event_name: str
    event_type: EventType
    scale_label: Optional[str] = None
    scale_max: Optional[int] = Field(None, ge=2, le=10)
    position: Optional[int] = None
    color: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator('event_name')
    @classmethod
    def validate_event_name(cls, v: str) -> str:
        """Strip whitespace and reject empty names"""
        v = v.strip()
        if not v:
            raise ValueError("Event name is required")
        return v

    @field_validator('color')
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        """Ensure #RRGGBB format if provided"""
        if v is not None and not is_hex_color(v):
            raise ValueError(f"Invalid color: '{v}'. Must be #RRGGBB")
        return v

    @model_validator(mode='after')
    def validate_scale_fields(self) -> 'EventInsert':
        """scale_max only for Scale events, scale_label never for Count"""
        if self.event_type == EventType.SCALE and self.scale_max is None:
            raise ValueError("scale_max is required for Scale events")
        if self.event_type != EventType.SCALE and self.scale_max is not None:
            raise ValueError(f"scale_max is only valid for Scale events, not {self.event_type.value}")
        if self.event_type == EventType.COUNT and self.scale_label is not None:
            raise ValueError("scale_label is not valid for Count events")
        return self


class EventUpdate(BaseModel):
    """Partial update; only explicitly set fields are sent"""

    event_name: Optional[str] = None
    event_type: Optional[EventType] = None
    scale_label: Optional[str] = None
    scale_max: Optional[int] = Field(None, ge=2, le=10)
    position: Optional[int] = None
    color: Optional[str] = None

    @field_validator('event_name')
    @classmethod
    def validate_event_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Event name cannot be empty")
        return v

    @field_validator('color')
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_hex_color(v):
            raise ValueError(f"Invalid color: '{v}'. Must be #RRGGBB")
        return v
