"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from rebalancer.constants import (
    METRIC_PROCESS_FAILURES,
    METRIC_RECORDS,
    METRIC_RECORDS_PROCESSED,
    METRIC_REHASHES,
    METRIC_ROWS_AFFECTED,
    METRIC_TICK_DURATION,
    METRIC_TICKS,
    METRIC_WORKERS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the rebalancer.

    Collects metrics for:
    - Observed worker and record counts
    - Coordinator tick outcomes and rehashes
    - Worker processing passes
    - Tick duration for both loops
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.workers = Gauge(
            METRIC_WORKERS,
            "Number of workers seen by the coordinator",
            registry=self._registry,
        )

        self.records = Gauge(
            METRIC_RECORDS,
            "Number of work items seen by the coordinator",
            registry=self._registry,
        )

        self.ticks = Counter(
            METRIC_TICKS,
            "Total number of coordinator ticks",
            ["outcome"],
            registry=self._registry,
        )

        self.rehashes = Counter(
            METRIC_REHASHES,
            "Total number of assignment rehashes",
            registry=self._registry,
        )

        self.tick_duration = Histogram(
            METRIC_TICK_DURATION,
            "Loop tick duration in seconds",
            ["loop"],
            buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )

        self.records_processed = Counter(
            METRIC_RECORDS_PROCESSED,
            "Total number of record updates issued by workers",
            ["worker_id"],
            registry=self._registry,
        )

        self.rows_affected = Counter(
            METRIC_ROWS_AFFECTED,
            "Total number of rows changed by worker updates",
            ["worker_id"],
            registry=self._registry,
        )

        self.process_failures = Counter(
            METRIC_PROCESS_FAILURES,
            "Total number of record updates that raised",
            ["worker_id"],
            registry=self._registry,
        )

    def record_observation(self, workers: int, records: int) -> None:
        """Record the coordinator's view of the system."""
        self.workers.set(workers)
        self.records.set(records)

    def record_tick(self, outcome: str, duration_seconds: float) -> None:
        """Record a coordinator tick."""
        self.ticks.labels(outcome=outcome).inc()
        self.tick_duration.labels(loop="coordinator").observe(duration_seconds)

    def record_rehash(self) -> None:
        self.rehashes.inc()

    def record_processing(
        self,
        worker_id: str,
        processed: int,
        rows_affected: int,
        failed: int,
        duration_seconds: float,
    ) -> None:
        """Record a worker processing pass."""
        self.records_processed.labels(worker_id=worker_id).inc(processed)
        self.rows_affected.labels(worker_id=worker_id).inc(rows_affected)
        if failed:
            self.process_failures.labels(worker_id=worker_id).inc(failed)
        self.tick_duration.labels(loop="worker").observe(duration_seconds)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
