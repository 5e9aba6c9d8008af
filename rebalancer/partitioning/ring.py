"""
Consistent-hashing ring construction.

Each worker occupies ``virtual_nodes`` positions on a 32-bit ring. Positions
are derived from a SHA-1 digest, so the ring for a given worker set is the
same in every process that builds it.
"""

import hashlib
from typing import Iterable

from rebalancer.constants import DEFAULT_VIRTUAL_NODES, HASH_BYTES
from rebalancer.types.assignment import HashRing, VirtualNode


def hash32(value: str) -> int:
    """
    Hash a string onto the 32-bit ring.

    Args:
        value: The string to hash.

    Returns:
        The first four bytes of its SHA-1 digest as a big-endian unsigned int.
    """
    digest = hashlib.sha1(value.encode("utf-8")).digest()
    return int.from_bytes(digest[:HASH_BYTES], "big")


def virtual_node_key(worker_id: str, index: int) -> str:
    return f"{worker_id}#{index}"


def build_ring(
    workers: Iterable[str],
    virtual_nodes: int = DEFAULT_VIRTUAL_NODES,
) -> HashRing:
    """
    Build a hash ring over a worker set.

    Workers are placed in sorted order, so when two virtual nodes collide the
    later one in that order owns the position regardless of how the caller
    ordered its input.

    Args:
        workers: Worker identities. Order and duplicates are ignored.
        virtual_nodes: Positions per worker.

    Returns:
        HashRing sorted ascending by hash. Empty if there are no workers.

    Raises:
        ValueError: If virtual_nodes is less than 1.
    """
    if virtual_nodes < 1:
        raise ValueError(f"virtual_nodes must be at least 1, got {virtual_nodes}")

    members = frozenset(workers)
    positions: dict[int, str] = {}

    for worker_id in sorted(members):
        for index in range(virtual_nodes):
            positions[hash32(virtual_node_key(worker_id, index))] = worker_id

    nodes = tuple(VirtualNode(h, owner) for h, owner in sorted(positions.items()))
    return HashRing(nodes=nodes, workers=members)
