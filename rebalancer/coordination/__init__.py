"""
Coordination module.
Contains the shared membership and assignment store implementations.
"""

from rebalancer.coordination.redis_store import RedisCoordinationStore
from rebalancer.coordination.store import (
    CoordinationStore,
    InMemoryCoordinationStore,
    decode_assignment,
    encode_assignment,
)

__all__ = [
    "CoordinationStore",
    "InMemoryCoordinationStore",
    "RedisCoordinationStore",
    "decode_assignment",
    "encode_assignment",
]
