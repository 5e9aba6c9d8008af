"""
Unit tests for worker registration and shutdown.
"""

import asyncio
import os
import signal
from unittest.mock import MagicMock

from rebalancer.config import Settings
from rebalancer.worker import Worker, serve
from rebalancer.worker.lifecycle import (
    deregister_worker,
    install_signal_handlers,
    register_worker,
    resolve_worker_id,
)
from tests.conftest import FlakyCoordinationStore, InMemoryRecordStore


class SlowCoordinationStore(FlakyCoordinationStore):
    """Store whose member removal never finishes in time."""

    async def remove_member(self, worker_id: str) -> None:
        await asyncio.sleep(10)


class TestRegistration:
    """Tests for register_worker and deregister_worker."""

    async def test_register(self, store: FlakyCoordinationStore):
        await register_worker(store, "pod-1")

        assert await store.is_member("pod-1")
        assert await store.get_assignment("pod-1") == []
        assert not await store.has_lease("pod-1")

    async def test_register_is_idempotent(self, store: FlakyCoordinationStore):
        """Registering twice keeps the published assignment."""
        await register_worker(store, "pod-1")
        await store.set_assignment("pod-1", ["r1"])

        await register_worker(store, "pod-1")

        assert await store.list_members() == {"pod-1"}
        assert await store.get_assignment("pod-1") == ["r1"]

    async def test_register_with_lease(self, store: FlakyCoordinationStore):
        await register_worker(store, "pod-1", lease_ttl_seconds=30)

        assert await store.has_lease("pod-1")

    async def test_deregister(self, store: FlakyCoordinationStore):
        await register_worker(store, "pod-1", lease_ttl_seconds=30)

        deregistered = await deregister_worker(store, "pod-1")

        assert deregistered is True
        assert not await store.is_member("pod-1")
        assert await store.get_assignment("pod-1") is None
        assert not await store.has_lease("pod-1")

    async def test_deregister_unknown_worker(self, store: FlakyCoordinationStore):
        assert await deregister_worker(store, "never-registered") is True

    async def test_deregister_store_unreachable(self, store: FlakyCoordinationStore):
        """Deregistration failures are logged, not raised."""
        await register_worker(store, "pod-1")
        store.fail_writes = True

        deregistered = await deregister_worker(store, "pod-1")

        assert deregistered is False
        assert await store.is_member("pod-1")

    async def test_deregister_times_out(self, clock):
        store = SlowCoordinationStore(clock=clock)
        await register_worker(store, "pod-1")

        deregistered = await deregister_worker(store, "pod-1", timeout_seconds=0.05)

        assert deregistered is False


class TestWorkerIdentity:
    """Tests for resolve_worker_id."""

    def test_pod_name(self):
        settings = Settings(pod_name="worker-7d9f-abc")

        assert resolve_worker_id(settings) == "worker-7d9f-abc"

    def test_fallback_to_host_and_pid(self):
        settings = Settings(pod_name=None)

        worker_id = resolve_worker_id(settings)

        assert worker_id.endswith(f"-{os.getpid()}")
        assert worker_id.startswith(os.uname().nodename)


class TestSignalHandlers:
    """Tests for install_signal_handlers."""

    def test_installs_interrupt_and_terminate(self):
        loop = MagicMock()
        callback = MagicMock()

        install_signal_handlers(loop, callback)

        installed = {call.args[0] for call in loop.add_signal_handler.call_args_list}
        assert installed == {signal.SIGINT, signal.SIGTERM}
        for call in loop.add_signal_handler.call_args_list:
            assert call.args[1] is callback
            assert call.args[2] == call.args[0]


class TestServe:
    """Tests for running a worker until shutdown."""

    async def test_sigterm_stops_and_deregisters(
        self,
        store: FlakyCoordinationStore,
        records: InMemoryRecordStore,
    ):
        """SIGTERM stops the loop and the worker leaves the registry."""
        await register_worker(store, "pod-1", lease_ttl_seconds=30)
        worker = Worker(worker_id="pod-1", store=store, records=records, interval_seconds=60)

        task = asyncio.create_task(serve(worker, store, deregister_timeout=1))
        await asyncio.sleep(0.01)
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(task, timeout=1)

        assert not await store.is_member("pod-1")
        assert await store.get_assignment("pod-1") is None
        assert not await store.has_lease("pod-1")
        assert asyncio.get_running_loop().remove_signal_handler(signal.SIGTERM) is False

    async def test_stop_deregisters(
        self,
        store: FlakyCoordinationStore,
        records: InMemoryRecordStore,
    ):
        await register_worker(store, "pod-1")
        worker = Worker(worker_id="pod-1", store=store, records=records, interval_seconds=60)

        task = asyncio.create_task(serve(worker, store, deregister_timeout=1))
        await asyncio.sleep(0.01)
        await worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert await store.list_members() == set()

    async def test_unreachable_store_does_not_block_exit(
        self,
        store: FlakyCoordinationStore,
        records: InMemoryRecordStore,
    ):
        await register_worker(store, "pod-1")
        worker = Worker(worker_id="pod-1", store=store, records=records, interval_seconds=60)

        task = asyncio.create_task(serve(worker, store, deregister_timeout=1))
        await asyncio.sleep(0.01)
        store.fail_writes = True
        await worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert await store.is_member("pod-1")
