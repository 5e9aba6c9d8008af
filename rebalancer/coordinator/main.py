"""
Coordinator process for balancing work items across workers.

The coordinator periodically compares the registered workers and the stored
work items with what it saw on the previous tick. When either set changes it
rebuilds the hash ring and republishes every worker's assignment.
"""

import asyncio
import logging
import signal
import sys
import time

from rebalancer.api import create_app, start_probe_server
from rebalancer.bootstrap import connect_stores
from rebalancer.config import get_settings
from rebalancer.constants import (
    SPAN_COORDINATOR_TICK,
    SPAN_REHASH,
    ProcessRole,
    TickOutcome,
)
from rebalancer.coordination import CoordinationStore
from rebalancer.db import SqlRecordStore, bootstrap_records, close_db
from rebalancer.db.repository import RecordStore
from rebalancer.errors import BootstrapError
from rebalancer.observability.logging import setup_logging
from rebalancer.observability.metrics import get_metrics, setup_metrics
from rebalancer.observability.tracing import get_tracer, setup_tracing
from rebalancer.partitioning import build_ring, plan_assignments
from rebalancer.types.assignment import AssignmentPlan, SystemSnapshot, TickResult

logger = logging.getLogger(__name__)


class Coordinator:
    """
    Change-detecting assignment publisher.

    Each tick:
    1. Reads the worker set and the record-id set
    2. Compares both, as sets, with the previous snapshot
    3. On change, rebuilds the ring and republishes the full assignment
       (or clears it when no workers remain)
    4. Otherwise checks the stored entries still match the ring and
       republishes if they do not

    The snapshot belongs to the instance and only advances on a tick that
    read successfully and either found no change or published. A failed
    tick leaves it alone so the next tick sees the same change again.
    """

    def __init__(
        self,
        store: CoordinationStore,
        records: RecordStore,
        interval_seconds: float | None = None,
        virtual_nodes: int | None = None,
        use_leases: bool | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            store: Coordination store holding membership and assignments.
            records: Record store holding the work items.
            interval_seconds: Seconds between ticks.
            virtual_nodes: Ring positions per worker.
            use_leases: Only count workers holding a live lease.
        """
        settings = get_settings()

        self.interval = interval_seconds or settings.coordinator_interval_seconds
        self.virtual_nodes = virtual_nodes or settings.virtual_nodes
        self.use_leases = settings.lease_enabled if use_leases is None else use_leases
        self.snapshot = SystemSnapshot.empty()

        self._store = store
        self._records = records
        self._running = False
        self._stop_event = asyncio.Event()
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the coordinator loop."""
        logger.info(
            f"Coordinator starting with interval {self.interval}s",
            extra={"virtual_nodes": self.virtual_nodes, "use_leases": self.use_leases},
        )
        self._running = True
        self._stop_event.clear()

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in coordinator loop: {e}")

            await self._sleep()

        logger.info("Coordinator stopped")

    async def stop(self) -> None:
        """Stop the coordinator."""
        logger.info("Coordinator stopping")
        self._running = False
        self._stop_event.set()

    async def _sleep(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            pass

    async def run_once(self) -> TickResult:
        """
        Run a single tick against the coordinator's own snapshot.

        Returns:
            The tick result.
        """
        result = await self.evaluate(self.snapshot)
        self.snapshot = result.snapshot
        return result

    async def read_system(self) -> SystemSnapshot:
        """
        Read the current worker and record sets.

        The two reads hit different stores and are not consistent with each
        other; a stale view is corrected on the next tick.
        """
        if self.use_leases:
            workers = await self._store.live_members()
        else:
            workers = await self._store.list_members()

        record_ids = await self._records.list_ids()
        return SystemSnapshot.of(workers, record_ids)

    async def evaluate(self, previous: SystemSnapshot) -> TickResult:
        """
        Evaluate the system against a previous snapshot.

        Args:
            previous: Snapshot from the last successful tick.

        Returns:
            TickResult whose snapshot should be passed to the next tick.
        """
        start_time = time.time()

        with get_tracer().start_as_current_span(SPAN_COORDINATOR_TICK) as span:
            result = await self._evaluate(previous)
            span.set_attribute("outcome", result.outcome.value)

        self._metrics.record_tick(result.outcome.value, time.time() - start_time)
        return result

    async def _evaluate(self, previous: SystemSnapshot) -> TickResult:
        try:
            current = await self.read_system()
        except Exception as e:
            logger.exception(f"Failed to read system state, skipping tick: {e}")
            return TickResult(outcome=TickOutcome.READ_FAILED, snapshot=previous)

        self._metrics.record_observation(len(current.workers), len(current.record_ids))

        changed = current.differs_from(previous)
        logger.info(
            "Change detected, rehashing" if changed else "No change in status",
            extra={
                "workers": len(current.workers),
                "previous_workers": len(previous.workers),
                "records": len(current.record_ids),
                "previous_records": len(previous.record_ids),
            },
        )

        if not changed:
            try:
                drifted = await self.has_drifted(current)
            except Exception as e:
                logger.exception(f"Failed to read published assignments: {e}")
                return TickResult(outcome=TickOutcome.READ_FAILED, snapshot=previous)

            if not drifted:
                return TickResult(outcome=TickOutcome.UNCHANGED, snapshot=current)
            logger.warning("Published assignments do not match the ring, republishing")

        try:
            plan = await self.rehash(current)
        except Exception as e:
            logger.exception(f"Failed to publish assignments: {e}")
            return TickResult(outcome=TickOutcome.PUBLISH_FAILED, snapshot=previous)

        if plan.clear:
            outcome = TickOutcome.CLEARED
        elif changed:
            outcome = TickOutcome.REHASHED
        else:
            outcome = TickOutcome.REPAIRED
        return TickResult(outcome=outcome, snapshot=current, plan=plan)

    async def has_drifted(self, snapshot: SystemSnapshot) -> bool:
        """
        Check the stored assignment entries against the plan for a snapshot.

        Entries drift when a worker re-registers or loses its entry between
        two ticks that see the same worker and record sets.
        """
        plan = plan_assignments(build_ring(snapshot.workers, self.virtual_nodes), snapshot.record_ids)
        published = await self._store.list_assignments()

        expected = {worker_id: set(ids) for worker_id, ids in plan.assignments.items()}
        return {worker_id: set(ids) for worker_id, ids in published.items()} != expected

    async def rehash(self, snapshot: SystemSnapshot) -> AssignmentPlan:
        """
        Recompute and publish the full assignment for a snapshot.

        Every worker's entry is rewritten, including workers whose records
        did not move.

        Args:
            snapshot: The current worker and record sets.

        Returns:
            The published plan.
        """
        with get_tracer().start_as_current_span(SPAN_REHASH) as span:
            ring = build_ring(snapshot.workers, self.virtual_nodes)
            plan = plan_assignments(ring, snapshot.record_ids)
            span.set_attribute("workers", len(snapshot.workers))
            span.set_attribute("records", len(snapshot.record_ids))

            if plan.clear:
                await self._store.clear_assignments()
                logger.info("No workers registered, cleared all assignments")
            else:
                await self._store.replace_assignments(plan.assignments)
                logger.info(
                    "Published assignments",
                    extra={
                        "assignments": {w: len(ids) for w, ids in plan.assignments.items()},
                        "ring_size": len(ring),
                    },
                )

        self._metrics.record_rehash()
        return plan


async def run_async() -> None:
    """Run the coordinator asynchronously."""
    settings = get_settings()
    setup_logging(role=ProcessRole.COORDINATOR)
    setup_metrics()
    setup_tracing()

    store = await connect_stores(settings)

    try:
        total = await bootstrap_records(
            seed_count=settings.seed_record_count,
            reset=settings.reset_records_on_startup,
        )
        logger.info(f"Record store holds {total} work items")
    except Exception as e:
        await store.close()
        await close_db()
        raise BootstrapError(f"Failed to bootstrap work items: {e}") from e

    start_probe_server(create_app(ProcessRole.COORDINATOR))

    coordinator = Coordinator(store=store, records=SqlRecordStore())

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(coordinator.stop())
        )

    try:
        await coordinator.start()
    finally:
        await store.close()
        await close_db()


def run() -> None:
    """Run the coordinator."""
    try:
        asyncio.run(run_async())
    except BootstrapError as e:
        logger.critical(f"Coordinator failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
