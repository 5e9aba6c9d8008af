"""
Worker process for processing assigned work items.

The worker registers itself with the coordination store, then periodically
reads the record ids the coordinator assigned to it and bumps each record in
the record store. On SIGTERM/SIGINT it deregisters before exiting.
"""

import asyncio
import logging
import signal
import sys
import time

from rebalancer.api import create_app, start_probe_server
from rebalancer.bootstrap import connect_stores
from rebalancer.config import get_settings
from rebalancer.constants import SPAN_WORKER_TICK, ProcessRole
from rebalancer.coordination import CoordinationStore
from rebalancer.db import SqlRecordStore, close_db
from rebalancer.db.repository import RecordStore
from rebalancer.errors import BootstrapError
from rebalancer.observability.logging import bind_context, setup_logging
from rebalancer.observability.metrics import get_metrics, setup_metrics
from rebalancer.observability.tracing import get_tracer, setup_tracing
from rebalancer.types.assignment import ProcessResult
from rebalancer.worker.lifecycle import (
    deregister_worker,
    install_signal_handlers,
    register_worker,
    remove_signal_handlers,
    resolve_worker_id,
)

logger = logging.getLogger(__name__)


class Worker:
    """
    Worker that processes its published assignment.

    Features:
    - Fixed-interval processing, one pass at a time
    - Optional lease heartbeat so the coordinator can drop crashed workers
    - Graceful stop that wakes the loop immediately

    A pass never acknowledges or clears the assignment, so every pass bumps
    the same records again until the coordinator reassigns them.
    """

    def __init__(
        self,
        worker_id: str,
        store: CoordinationStore,
        records: RecordStore,
        interval_seconds: float | None = None,
        lease_ttl_seconds: int | None = None,
        heartbeat_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            worker_id: This worker's identity.
            store: Coordination store to read the assignment from.
            records: Record store to apply updates to.
            interval_seconds: Seconds between processing passes.
            lease_ttl_seconds: Lease duration; None disables the heartbeat.
            heartbeat_interval: Seconds between lease refreshes.
        """
        settings = get_settings()

        self.worker_id = worker_id
        self.interval = interval_seconds or settings.worker_interval_seconds
        self.lease_ttl = lease_ttl_seconds
        self.heartbeat_interval = heartbeat_interval or settings.worker_heartbeat_interval_seconds

        self._store = store
        self._records = records
        self._running = False
        self._stop_event = asyncio.Event()
        self._heartbeat_task: asyncio.Task | None = None
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the worker."""
        logger.info(
            "Worker starting",
            extra={"worker_id": self.worker_id, "interval": self.interval}
        )

        self._running = True
        self._stop_event.clear()

        if self.lease_ttl:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

        while self._running:
            await self._sleep(self.interval)
            if not self._running:
                break

            try:
                await self.process_assignment()
            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.worker_id}
                )

        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass

        logger.info("Worker stopped", extra={"worker_id": self.worker_id})

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False
        self._stop_event.set()

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def process_assignment(self) -> ProcessResult:
        """
        Apply one update per assigned record.

        A record that no longer exists affects zero rows and is only logged.
        An update that raises is logged and skipped; the next pass tries it
        again.

        Returns:
            Counts for this pass.
        """
        start_time = time.time()
        result = ProcessResult(worker_id=self.worker_id)

        with get_tracer().start_as_current_span(SPAN_WORKER_TICK) as span:
            span.set_attribute("worker_id", self.worker_id)

            record_ids = await self._store.get_assignment(self.worker_id)
            if record_ids is None:
                logger.warning(
                    "No assignment entry for worker",
                    extra={"worker_id": self.worker_id}
                )
                record_ids = []

            result.assigned = len(record_ids)
            logger.info(
                f"Processing {len(record_ids)} assigned records",
                extra={"worker_id": self.worker_id, "record_ids": record_ids}
            )

            for record_id in record_ids:
                try:
                    affected = await self._records.increment(record_id, self.worker_id)
                except Exception as e:
                    result.failed += 1
                    logger.error(
                        f"Failed to update record: {e}",
                        extra={"worker_id": self.worker_id, "record_id": record_id}
                    )
                    continue

                result.processed += 1
                result.rows_affected += affected
                if affected == 0:
                    result.missing.append(record_id)

                logger.info(
                    "Updated record",
                    extra={"record_id": record_id, "rows_affected": affected}
                )

            span.set_attribute("processed", result.processed)
            span.set_attribute("rows_affected", result.rows_affected)

        duration = time.time() - start_time
        self._metrics.record_processing(
            worker_id=self.worker_id,
            processed=result.processed,
            rows_affected=result.rows_affected,
            failed=result.failed,
            duration_seconds=duration,
        )

        logger.info(
            "Finished processing pass",
            extra={
                "worker_id": self.worker_id,
                "processed": result.processed,
                "rows_affected": result.rows_affected,
                "failed": result.failed,
                "duration": f"{duration:.3f}s",
            }
        )
        return result

    async def _heartbeat_loop(self) -> None:
        """
        Periodically refresh this worker's membership lease.

        The coordinator ignores members whose lease has expired, which
        covers workers that died without deregistering.
        """
        while self._running:
            try:
                await self._store.refresh_lease(self.worker_id, self.lease_ttl)
                logger.debug("Refreshed lease", extra={"worker_id": self.worker_id})
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in heartbeat loop: {e}")

            await asyncio.sleep(self.heartbeat_interval)


async def serve(worker: Worker, store: CoordinationStore, deregister_timeout: float) -> None:
    """
    Run a registered worker until SIGINT or SIGTERM, then deregister it.

    Args:
        worker: The worker to run.
        store: Coordination store the worker is registered in.
        deregister_timeout: Upper bound on deregistration.
    """
    loop = asyncio.get_running_loop()

    def on_shutdown(sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, deregistering worker")
        asyncio.create_task(worker.stop())

    install_signal_handlers(loop, on_shutdown)

    try:
        await worker.start()
    finally:
        await deregister_worker(store, worker.worker_id, deregister_timeout)
        remove_signal_handlers(loop)


async def run_async() -> None:
    """Run the worker asynchronously."""
    settings = get_settings()
    setup_logging(role=ProcessRole.WORKER)
    setup_metrics()
    setup_tracing()

    worker_id = resolve_worker_id(settings)
    bind_context(worker_id=worker_id)

    store = await connect_stores(settings)

    try:
        await register_worker(store, worker_id, settings.worker_lease_ttl_seconds)
    except Exception as e:
        await store.close()
        await close_db()
        raise BootstrapError(f"Failed to register worker {worker_id}: {e}") from e

    start_probe_server(create_app(ProcessRole.WORKER, worker_id=worker_id))

    worker = Worker(
        worker_id=worker_id,
        store=store,
        records=SqlRecordStore(),
        lease_ttl_seconds=settings.worker_lease_ttl_seconds,
    )

    try:
        await serve(worker, store, settings.deregister_timeout_seconds)
    finally:
        await store.close()
        await close_db()


def run() -> None:
    """Run the worker."""
    try:
        asyncio.run(run_async())
    except BootstrapError as e:
        logger.critical(f"Worker failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
