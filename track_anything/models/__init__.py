"""Entity models for events, logs and notes"""
from track_anything.models.common import ChartType, EntityKind, is_hex_color
from track_anything.models.events import (
    DEFAULT_EVENT_COLOR,
    Event,
    EventInsert,
    EventType,
    EventUpdate,
)
from track_anything.models.logs import Log, LogInsert, LogUpdate, validate_log_value
from track_anything.models.notes import Note, NoteInsert, NoteUpdate

__all__ = [
    "ChartType",
    "EntityKind",
    "is_hex_color",
    "DEFAULT_EVENT_COLOR",
    "Event",
    "EventInsert",
    "EventType",
    "EventUpdate",
    "Log",
    "LogInsert",
    "LogUpdate",
    "validate_log_value",
    "Note",
    "NoteInsert",
    "NoteUpdate",
]
