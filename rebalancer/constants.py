"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class TickOutcome(StrEnum):
    """
    Result of a single coordinator tick.

    Only UNCHANGED, REHASHED, REPAIRED and CLEARED advance the coordinator's
    snapshot; failed ticks keep the previous one so the next tick re-detects
    the change. REPAIRED is a republish on an unchanged snapshot whose stored
    entries no longer match the ring.
    """

    UNCHANGED = "unchanged"
    REHASHED = "rehashed"
    REPAIRED = "repaired"
    CLEARED = "cleared"
    READ_FAILED = "read_failed"
    PUBLISH_FAILED = "publish_failed"


class ProcessRole(StrEnum):
    """Kind of process serving the probes."""

    COORDINATOR = "coordinator"
    WORKER = "worker"


# Default values
DEFAULT_VIRTUAL_NODES = 10
HASH_BYTES = 4

# Coordination store key suffixes (joined to the configured prefix)
MEMBERS_KEY = "workers"
ASSIGNMENTS_KEY = "assignments"
LEASE_KEY = "lease"

# Record store
WORK_ITEMS_TABLE = "work_items"

# Metrics names
METRIC_WORKERS = "rebalancer_workers"
METRIC_RECORDS = "rebalancer_records"
METRIC_TICKS = "rebalancer_coordinator_ticks_total"
METRIC_REHASHES = "rebalancer_rehashes_total"
METRIC_TICK_DURATION = "rebalancer_tick_duration_seconds"
METRIC_RECORDS_PROCESSED = "rebalancer_records_processed_total"
METRIC_ROWS_AFFECTED = "rebalancer_rows_affected_total"
METRIC_PROCESS_FAILURES = "rebalancer_process_failures_total"

# Trace span names
SPAN_COORDINATOR_TICK = "coordinator_tick"
SPAN_REHASH = "rehash"
SPAN_WORKER_TICK = "worker_tick"
