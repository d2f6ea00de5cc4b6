"""Durable local storage"""
from track_anything.storage.local_cache import CacheEntry, LocalCache, LAST_SYNC_KEY, STORAGE_KEYS

__all__ = ["CacheEntry", "LocalCache", "LAST_SYNC_KEY", "STORAGE_KEYS"]
