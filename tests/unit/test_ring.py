"""
Unit tests for hash ring construction.
"""

from collections import Counter

import pytest

from rebalancer.partitioning.ring import build_ring, hash32


class TestHash32:
    """Tests for the 32-bit ring hash."""

    def test_known_digests(self):
        """First four bytes of SHA-1, big-endian."""
        # sha1("abc") = a9993e36...
        assert hash32("abc") == 0xA9993E36
        # sha1("") = da39a3ee...
        assert hash32("") == 0xDA39A3EE

    def test_range(self):
        for value in ("worker-1#0", "r1", "550e8400-e29b-41d4-a716-446655440000"):
            assert 0 <= hash32(value) < 2**32

    def test_deterministic(self):
        assert hash32("worker-1#3") == hash32("worker-1#3")


class TestBuildRing:
    """Tests for build_ring."""

    def test_empty_worker_set(self):
        """No workers produces an empty ring."""
        ring = build_ring([])

        assert ring.is_empty
        assert len(ring) == 0
        assert ring.workers == frozenset()

    def test_virtual_nodes_per_worker(self):
        """Each worker gets the configured number of positions."""
        ring = build_ring({"a", "b", "c"}, virtual_nodes=10)

        owners = Counter(node.owner for node in ring.nodes)
        assert owners == {"a": 10, "b": 10, "c": 10}

    def test_default_virtual_nodes(self):
        ring = build_ring({"worker-1"})

        assert len(ring) == 10

    def test_positions_use_suffixed_keys(self):
        """Virtual node i of worker w sits at hash32("w#i")."""
        ring = build_ring({"pod-a"}, virtual_nodes=4)

        assert set(ring.hashes) == {hash32(f"pod-a#{i}") for i in range(4)}

    def test_sorted_ascending(self):
        ring = build_ring({f"worker-{i}" for i in range(8)})

        assert ring.hashes == sorted(ring.hashes)

    def test_order_independent(self):
        """Input order does not change the ring."""
        ring1 = build_ring(["a", "b", "c"])
        ring2 = build_ring(["c", "a", "b"])
        ring3 = build_ring(("b", "c", "a", "a"))

        assert ring1 == ring2 == ring3

    def test_invalid_virtual_nodes(self):
        with pytest.raises(ValueError):
            build_ring({"a"}, virtual_nodes=0)
