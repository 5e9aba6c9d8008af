"""
Worker registration, deregistration and shutdown signal handling.
"""

import asyncio
import logging
import os
import signal
from collections.abc import Callable

from rebalancer.config import Settings
from rebalancer.coordination import CoordinationStore

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def resolve_worker_id(settings: Settings) -> str:
    """
    Determine this process's worker identity.

    Uses the orchestrator-provided pod name, falling back to hostname + PID.
    Resolved once at startup.
    """
    if settings.pod_name:
        return settings.pod_name
    return f"{os.uname().nodename}-{os.getpid()}"


async def register_worker(
    store: CoordinationStore,
    worker_id: str,
    lease_ttl_seconds: int | None = None,
) -> None:
    """
    Register a worker, creating an empty assignment entry if it has none.

    Re-registering an identity that is already present keeps its published
    assignment, so a worker restarted under the same name resumes its records
    without waiting for the coordinator to see a change.

    Args:
        store: The coordination store.
        worker_id: The worker identity.
        lease_ttl_seconds: Initial lease duration, if leases are enabled.
    """
    await store.add_member(worker_id)
    await store.init_assignment(worker_id)
    if lease_ttl_seconds:
        await store.refresh_lease(worker_id, lease_ttl_seconds)

    logger.info("Registered worker", extra={"worker_id": worker_id})


async def _remove_worker(store: CoordinationStore, worker_id: str) -> None:
    await store.remove_member(worker_id)
    await store.delete_assignment(worker_id)
    await store.drop_lease(worker_id)


async def deregister_worker(
    store: CoordinationStore,
    worker_id: str,
    timeout_seconds: float = 3.0,
) -> bool:
    """
    Remove a worker from the registry, best-effort.

    Failures are logged and never raised so that shutdown always proceeds.
    An identity left behind is dropped once it is removed or its lease
    expires.

    Args:
        store: The coordination store.
        worker_id: The worker identity.
        timeout_seconds: Upper bound on the whole deregistration.

    Returns:
        True if the worker was deregistered.
    """
    try:
        await asyncio.wait_for(_remove_worker(store, worker_id), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(
            f"Deregistration timed out after {timeout_seconds}s",
            extra={"worker_id": worker_id},
        )
        return False
    except Exception as e:
        logger.error(
            f"Failed to deregister worker: {e}",
            extra={"worker_id": worker_id},
        )
        return False

    logger.info("Deregistered worker", extra={"worker_id": worker_id})
    return True


def install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    on_shutdown: Callable[[signal.Signals], None],
) -> None:
    """
    Route SIGINT and SIGTERM to a shutdown callback.

    Args:
        loop: The running event loop.
        on_shutdown: Called with the received signal.
    """
    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, on_shutdown, sig)


def remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    """Restore default handling of SIGINT and SIGTERM."""
    for sig in SHUTDOWN_SIGNALS:
        loop.remove_signal_handler(sig)
