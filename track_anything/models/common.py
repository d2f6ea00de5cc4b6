"""Shared model types for the sync core"""
import re
from enum import Enum

HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class EntityKind(str, Enum):
    """Entity collections cached as whole snapshots"""
    EVENTS = "events"
    LOGS = "logs"
    NOTES = "notes"


class ChartType(str, Enum):
    """Chart style a user picked for an event"""
    LINE = "line"
    BAR = "bar"


def is_hex_color(value: str) -> bool:
    """True for '#RRGGBB' strings"""
    return bool(HEX_COLOR_PATTERN.match(value or ""))
