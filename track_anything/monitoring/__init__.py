"""Monitoring infrastructure for the sync core"""
from track_anything.monitoring.sentry_config import init_sentry, capture_exception, set_user_context
from track_anything.monitoring.prometheus_metrics import (
    metrics,
    track_cache_read,
    track_refresh,
    track_refresh_join,
    track_background_failure,
    track_remote_request,
)

__all__ = [
    "init_sentry",
    "capture_exception",
    "set_user_context",
    "metrics",
    "track_cache_read",
    "track_refresh",
    "track_refresh_join",
    "track_background_failure",
    "track_remote_request",
]
