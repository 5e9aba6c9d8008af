"""
Coordination store interface.

The coordination store holds worker membership, the per-worker assignment
entries published by the coordinator and, when enabled, membership leases.
Each worker's assignment entry is written only by the coordinator and read
only by that worker.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping

logger = logging.getLogger(__name__)


def encode_assignment(record_ids: Iterable[str]) -> str:
    """
    Serialize an assignment list for storage.

    Args:
        record_ids: Record identifiers in assignment order.

    Returns:
        JSON array of strings.
    """
    return json.dumps([str(record_id) for record_id in record_ids])


def decode_assignment(raw: str | bytes | None) -> list[str]:
    """
    Parse a stored assignment list.

    Accepts the JSON form written by ``encode_assignment`` as well as the
    bracketed, whitespace-separated form (``"[id1 id2]"``) used by older
    control planes.

    Args:
        raw: The stored value, or None if the entry is missing.

    Returns:
        Record identifiers, empty for a missing or blank entry.
    """
    if raw is None:
        return []
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")

    text = raw.strip()
    if not text:
        return []

    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return [token for token in text.strip("[]").split() if token]

    if not isinstance(value, list):
        raise ValueError(f"Assignment entry is not a list: {text!r}")
    return [str(record_id) for record_id in value]


class CoordinationStore(ABC):
    """Shared membership and assignment storage."""

    @abstractmethod
    async def ping(self) -> None:
        """Check connectivity. Raises if the store is unreachable."""

    @abstractmethod
    async def add_member(self, worker_id: str) -> None: ...

    @abstractmethod
    async def remove_member(self, worker_id: str) -> None: ...

    @abstractmethod
    async def list_members(self) -> set[str]: ...

    @abstractmethod
    async def is_member(self, worker_id: str) -> bool: ...

    @abstractmethod
    async def set_assignment(self, worker_id: str, record_ids: Iterable[str]) -> None:
        """Overwrite one worker's assignment entry."""

    @abstractmethod
    async def init_assignment(self, worker_id: str) -> bool:
        """Write an empty assignment entry unless one exists. Returns True if written."""

    @abstractmethod
    async def get_assignment(self, worker_id: str) -> list[str] | None:
        """Read one worker's assignment, or None if it has no entry."""

    @abstractmethod
    async def delete_assignment(self, worker_id: str) -> None: ...

    @abstractmethod
    async def list_assignments(self) -> dict[str, list[str]]: ...

    @abstractmethod
    async def replace_assignments(self, assignments: Mapping[str, Iterable[str]]) -> None:
        """Drop every assignment entry and write the given mapping."""

    @abstractmethod
    async def clear_assignments(self) -> None:
        """Delete every assignment entry."""

    @abstractmethod
    async def refresh_lease(self, worker_id: str, ttl_seconds: int) -> None: ...

    @abstractmethod
    async def has_lease(self, worker_id: str) -> bool: ...

    @abstractmethod
    async def drop_lease(self, worker_id: str) -> None: ...

    async def live_members(self) -> set[str]:
        """Members that currently hold a lease."""
        return {worker_id for worker_id in await self.list_members() if await self.has_lease(worker_id)}

    async def close(self) -> None:
        """Release any connections held by the store."""


class InMemoryCoordinationStore(CoordinationStore):
    """
    Process-local coordination store.

    Mirrors the Redis store's semantics, including lease expiry, for tests and
    single-process runs.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._members: set[str] = set()
        self._assignments: dict[str, str] = {}
        self._leases: dict[str, float] = {}
        self._clock = clock

    async def ping(self) -> None:
        return None

    async def add_member(self, worker_id: str) -> None:
        self._members.add(worker_id)

    async def remove_member(self, worker_id: str) -> None:
        self._members.discard(worker_id)

    async def list_members(self) -> set[str]:
        return set(self._members)

    async def is_member(self, worker_id: str) -> bool:
        return worker_id in self._members

    async def set_assignment(self, worker_id: str, record_ids: Iterable[str]) -> None:
        self._assignments[worker_id] = encode_assignment(record_ids)

    async def init_assignment(self, worker_id: str) -> bool:
        if worker_id in self._assignments:
            return False
        self._assignments[worker_id] = encode_assignment([])
        return True

    async def get_assignment(self, worker_id: str) -> list[str] | None:
        raw = self._assignments.get(worker_id)
        if raw is None:
            return None
        return decode_assignment(raw)

    async def delete_assignment(self, worker_id: str) -> None:
        self._assignments.pop(worker_id, None)

    async def list_assignments(self) -> dict[str, list[str]]:
        return {worker_id: decode_assignment(raw) for worker_id, raw in self._assignments.items()}

    async def replace_assignments(self, assignments: Mapping[str, Iterable[str]]) -> None:
        self._assignments = {
            worker_id: encode_assignment(record_ids)
            for worker_id, record_ids in assignments.items()
        }

    async def clear_assignments(self) -> None:
        self._assignments.clear()

    async def refresh_lease(self, worker_id: str, ttl_seconds: int) -> None:
        self._leases[worker_id] = self._clock() + ttl_seconds

    async def has_lease(self, worker_id: str) -> bool:
        expires_at = self._leases.get(worker_id)
        if expires_at is None:
            return False
        if self._clock() >= expires_at:
            del self._leases[worker_id]
            return False
        return True

    async def drop_lease(self, worker_id: str) -> None:
        self._leases.pop(worker_id, None)
