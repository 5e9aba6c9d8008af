"""
Pytest configuration and shared fixtures.
"""

from collections.abc import Iterable, Mapping

import pytest

from rebalancer.coordination import InMemoryCoordinationStore
from rebalancer.db.repository import RecordStore


class InMemoryRecordStore(RecordStore):
    """Record store kept in a dict, with switches to simulate failures."""

    def __init__(self, record_ids: Iterable[str] = ()):
        self.items: dict[str, dict] = {}
        self.fail_reads = False
        self.failing_ids: set[str] = set()
        for record_id in record_ids:
            self.add(record_id)

    def add(self, record_id: str) -> None:
        self.items[record_id] = {"value": 0, "current_worker": None}

    def remove(self, record_id: str) -> None:
        del self.items[record_id]

    def value(self, record_id: str) -> int:
        return self.items[record_id]["value"]

    async def list_ids(self) -> set[str]:
        if self.fail_reads:
            raise ConnectionError("record store unreachable")
        return set(self.items)

    async def increment(self, record_id: str, worker_id: str) -> int:
        if record_id in self.failing_ids:
            raise ConnectionError("record store unreachable")
        item = self.items.get(record_id)
        if item is None:
            return 0
        item["value"] += 1
        item["current_worker"] = worker_id
        return 1


class FlakyCoordinationStore(InMemoryCoordinationStore):
    """In-memory coordination store that can be told to fail."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.fail_reads = False
        self.fail_writes = False
        self.publish_count = 0

    async def list_members(self) -> set[str]:
        if self.fail_reads:
            raise ConnectionError("coordination store unreachable")
        return await super().list_members()

    async def replace_assignments(self, assignments: Mapping[str, Iterable[str]]) -> None:
        if self.fail_writes:
            raise ConnectionError("coordination store unreachable")
        self.publish_count += 1
        await super().replace_assignments(assignments)

    async def clear_assignments(self) -> None:
        if self.fail_writes:
            raise ConnectionError("coordination store unreachable")
        await super().clear_assignments()

    async def remove_member(self, worker_id: str) -> None:
        if self.fail_writes:
            raise ConnectionError("coordination store unreachable")
        await super().remove_member(worker_id)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> FlakyCoordinationStore:
    """Create an in-memory coordination store."""
    return FlakyCoordinationStore(clock=clock)


@pytest.fixture
def records() -> InMemoryRecordStore:
    """Create an in-memory record store with three records."""
    return InMemoryRecordStore(["r1", "r2", "r3"])
