"""
Partitioning module.
Contains the consistent-hashing ring and the assignment planner.
"""

from rebalancer.partitioning.planner import locate, plan_assignments
from rebalancer.partitioning.ring import build_ring, hash32

__all__ = ["build_ring", "hash32", "locate", "plan_assignments"]
