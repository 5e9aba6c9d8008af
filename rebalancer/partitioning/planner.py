"""
Assignment planning over a built hash ring.
"""

import bisect
import logging
from typing import Iterable

from rebalancer.partitioning.ring import hash32
from rebalancer.types.assignment import AssignmentPlan, HashRing

logger = logging.getLogger(__name__)


def locate(ring: HashRing, record_id: str, hashes: list[int] | None = None) -> str:
    """
    Find the worker owning a record.

    The owner is the first virtual node whose hash is greater than or equal to
    the record's hash. Past the last node the ring wraps to the smallest hash.

    Args:
        ring: A non-empty hash ring.
        record_id: The record identifier.
        hashes: Precomputed ``ring.hashes`` when locating many records.

    Returns:
        The owning worker identity.

    Raises:
        ValueError: If the ring is empty.
    """
    if ring.is_empty:
        raise ValueError("Cannot locate a record on an empty ring")

    if hashes is None:
        hashes = ring.hashes

    idx = bisect.bisect_left(hashes, hash32(str(record_id)))
    if idx == len(hashes):
        idx = 0

    return ring.nodes[idx].owner


def plan_assignments(ring: HashRing, record_ids: Iterable[str]) -> AssignmentPlan:
    """
    Assign every record to exactly one worker on the ring.

    Every worker in the ring receives an entry, including workers that end up
    with no records, so that publishing the plan overwrites stale lists.

    Args:
        ring: The hash ring for the current worker set.
        record_ids: Record identifiers. Order and duplicates are ignored.

    Returns:
        AssignmentPlan with sorted per-worker lists, or a plan flagged
        ``clear`` when the ring has no workers.
    """
    if ring.is_empty:
        logger.info("No workers on the ring, assignments should be cleared")
        return AssignmentPlan(assignments={}, clear=True)

    hashes = ring.hashes
    assignments: dict[str, list[str]] = {worker_id: [] for worker_id in sorted(ring.workers)}

    for record_id in sorted({str(r) for r in record_ids}):
        assignments.setdefault(locate(ring, record_id, hashes), []).append(record_id)

    return AssignmentPlan(assignments=assignments)
