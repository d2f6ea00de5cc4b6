"""Pydantic models for logged occurrences"""
import math
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from track_anything.exceptions import ValidationError
from track_anything.models.events import Event, EventType


class Log(BaseModel):
    """Log row as stored by the backend

    event_name is a denormalized copy of the parent event's name and is
    backfilled whenever the event is renamed.
    """

    id: str
    created_at: datetime
    updated_at: datetime
    event_id: str
    event_name: str
    value: float
    log_date: Optional[date] = None
    user_id: Optional[str] = None


class LogInsert(BaseModel):
    """Payload for creating a log"""

    event_id: str
    event_name: str
    value: float
    log_date: Optional[date] = None
    user_id: Optional[str] = None

    @field_validator('value')
    @classmethod
    def validate_finite(cls, v: float) -> float:
        """Reject NaN and infinities"""
        if not math.isfinite(v):
            raise ValueError(f"Invalid value: {v}")
        return v

    @classmethod
    def for_event(
        cls,
        event: Event,
        value: Optional[float] = None,
        log_date: Optional[date] = None
    ) -> 'LogInsert':
        """
        Build a log for an event, checking the value against the event type.

        Count events always log 1; Scale events need an integer in
        [1, scale_max]; Metric events accept any finite number.

        Raises:
            ValidationError: value does not fit the event type
        """
        value = validate_log_value(event, value)
        return cls(
            event_id=event.id,
            event_name=event.event_name,
            value=value,
            log_date=log_date,
        )


class LogUpdate(BaseModel):
    """Partial update; only explicitly set fields are sent"""

    event_id: Optional[str] = None
    event_name: Optional[str] = None
    value: Optional[float] = None
    log_date: Optional[date] = None


def validate_log_value(event: Event, value: Optional[float]) -> float:
    """Return the value a log against ``event`` should carry"""
    if event.event_type == EventType.COUNT:
        return 1

    if value is None or not math.isfinite(value):
        raise ValidationError(
            f"A value is required for {event.event_type.value} events",
            field="value",
            value=value,
            operation="validate_log_value",
        )

    if event.event_type == EventType.SCALE:
        scale_max = event.scale_max or 10
        if value != int(value) or not 1 <= value <= scale_max:
            raise ValidationError(
                f"must be a whole number between 1 and {scale_max}",
                field="value",
                value=value,
                operation="validate_log_value",
            )
        return int(value)

    return value
