"""
Type definitions for the rebalancer.
Contains input/output type definitions for all functions, grouped by module.
"""

from rebalancer.types.api import HealthResponse, ReadyResponse
from rebalancer.types.assignment import (
    AssignmentPlan,
    HashRing,
    ProcessResult,
    SystemSnapshot,
    TickResult,
    VirtualNode,
)

__all__ = [
    # API types
    "HealthResponse",
    "ReadyResponse",
    # Assignment types
    "AssignmentPlan",
    "HashRing",
    "ProcessResult",
    "SystemSnapshot",
    "TickResult",
    "VirtualNode",
]
