"""Cached repositories for events, logs and notes"""
from track_anything.repositories.base import CachedRepository, RefreshState
from track_anything.repositories.events import EventRepository
from track_anything.repositories.logs import LogRepository
from track_anything.repositories.notes import NoteRepository

__all__ = [
    "CachedRepository",
    "RefreshState",
    "EventRepository",
    "LogRepository",
    "NoteRepository",
]
