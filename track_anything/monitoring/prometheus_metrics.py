"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

from track_anything.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self):
        if not ENABLE_PROMETHEUS:
            logger.info("Prometheus metrics disabled")
            self._enabled = False
            return

        try:
            # Local cache metrics
            self.cache_reads_total = Counter(
                'track_anything_cache_reads_total',
                'Repository reads served from the local cache',
                ['kind', 'result']
            )

            # Refresh metrics
            self.refreshes_total = Counter(
                'track_anything_refreshes_total',
                'Collection refreshes against the backend',
                ['kind', 'scope', 'status']
            )

            self.refresh_joins_total = Counter(
                'track_anything_refresh_joins_total',
                'Refresh requests coalesced onto an in-flight refresh',
                ['kind']
            )

            # Backend metrics
            self.remote_requests_total = Counter(
                'track_anything_remote_requests_total',
                'Total backend requests',
                ['table', 'operation', 'status']
            )

            self.remote_request_duration_seconds = Histogram(
                'track_anything_remote_request_duration_seconds',
                'Backend request latency',
                ['table', 'operation'],
                buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0]
            )

            # Background task metrics
            self.background_failures_total = Counter(
                'track_anything_background_failures_total',
                'Detached background tasks that failed',
                ['task']
            )

            self._enabled = True
            logger.info("Prometheus metrics initialized")

        except Exception as e:
            logger.error(f"Failed to initialize Prometheus metrics: {e}", exc_info=True)
            self._enabled = False

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = PrometheusMetrics()


def track_cache_read(kind: str, hit: bool) -> None:
    """Track a repository read against the local cache"""
    if not metrics.enabled:
        return

    metrics.cache_reads_total.labels(kind=kind, result="hit" if hit else "miss").inc()


def track_refresh(kind: str, scope: str, status: str) -> None:
    """Track a finished refresh (scope: full or filtered)"""
    if not metrics.enabled:
        return

    metrics.refreshes_total.labels(kind=kind, scope=scope, status=status).inc()


def track_refresh_join(kind: str) -> None:
    if not metrics.enabled:
        return

    metrics.refresh_joins_total.labels(kind=kind).inc()


def track_background_failure(task: str) -> None:
    if not metrics.enabled:
        return

    # Task names carry ids after the first ':'; keep label cardinality bounded
    metrics.background_failures_total.labels(task=task.split(":", 1)[0]).inc()


@contextmanager
def track_remote_request(table: str, operation: str):
    """Track backend request metrics"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()
    status = "error"  # Default to error

    try:
        yield
        status = "success"
    finally:
        duration = time.time() - start_time
        metrics.remote_request_duration_seconds.labels(
            table=table,
            operation=operation
        ).observe(duration)

        metrics.remote_requests_total.labels(
            table=table,
            operation=operation,
            status=status
        ).inc()
