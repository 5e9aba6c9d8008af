"""
Assignment-related type definitions for internal use.
"""

from dataclasses import dataclass, field
from typing import Iterable, NamedTuple

from rebalancer.constants import TickOutcome


class VirtualNode(NamedTuple):
    """One position a worker occupies on the hash ring."""

    hash: int
    owner: str


@dataclass(frozen=True)
class HashRing:
    """
    Ordered virtual nodes for a fixed worker set.

    Nodes are sorted ascending by hash. A ring is rebuilt from scratch on every
    rehash and never mutated.
    """

    nodes: tuple[VirtualNode, ...] = ()
    workers: frozenset[str] = frozenset()

    @property
    def hashes(self) -> list[int]:
        """Sorted virtual-node hashes."""
        return [node.hash for node in self.nodes]

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def __len__(self) -> int:
        return len(self.nodes)


@dataclass(frozen=True)
class AssignmentPlan:
    """
    Worker to record-id mapping produced by the planner.

    When ``clear`` is set there were no workers to assign to and the caller
    should wipe the published assignments instead of writing this mapping.
    """

    assignments: dict[str, list[str]] = field(default_factory=dict)
    clear: bool = False

    @property
    def record_count(self) -> int:
        """Total number of assigned records."""
        return sum(len(ids) for ids in self.assignments.values())

    def owner_of(self, record_id: str) -> str | None:
        """Find the worker a record was assigned to."""
        for worker_id, ids in self.assignments.items():
            if record_id in ids:
                return worker_id
        return None


@dataclass(frozen=True)
class SystemSnapshot:
    """
    The coordinator's view of the system at the end of a tick.

    Used only for change detection; never persisted.
    """

    workers: frozenset[str] = frozenset()
    record_ids: frozenset[str] = frozenset()

    @classmethod
    def empty(cls) -> "SystemSnapshot":
        return cls()

    @classmethod
    def of(cls, workers: Iterable[str], record_ids: Iterable[str]) -> "SystemSnapshot":
        """Build a snapshot from any iterables, ignoring order and duplicates."""
        return cls(
            workers=frozenset(workers),
            record_ids=frozenset(str(record_id) for record_id in record_ids),
        )

    def differs_from(self, other: "SystemSnapshot") -> bool:
        """Check whether either set changed."""
        return self.workers != other.workers or self.record_ids != other.record_ids


@dataclass(frozen=True)
class TickResult:
    """Outcome of one coordinator tick, carrying the snapshot for the next one."""

    outcome: TickOutcome
    snapshot: SystemSnapshot
    plan: AssignmentPlan | None = None


@dataclass
class ProcessResult:
    """Counts from one pass of the worker processing loop."""

    worker_id: str
    assigned: int = 0
    processed: int = 0
    rows_affected: int = 0
    failed: int = 0
    missing: list[str] = field(default_factory=list)
