"""
Redis-backed coordination store.

Layout under the configured key prefix:
- ``{prefix}:workers``: set of registered worker identities
- ``{prefix}:assignments``: hash of worker identity -> JSON list of record ids
- ``{prefix}:lease:{worker_id}``: expiring key present while a lease is live
"""

import logging
from collections.abc import Iterable, Mapping

from redis.asyncio import Redis
from redis.exceptions import RedisError

from rebalancer.config import Settings, get_settings
from rebalancer.constants import ASSIGNMENTS_KEY, LEASE_KEY, MEMBERS_KEY
from rebalancer.coordination.store import (
    CoordinationStore,
    decode_assignment,
    encode_assignment,
)
from rebalancer.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisCoordinationStore(CoordinationStore):
    """
    Coordination store on a shared Redis instance.

    Every command is bounded by the client's socket timeout.
    """

    def __init__(self, client: Redis, key_prefix: str = "rebalancer"):
        """
        Initialize the store.

        Args:
            client: Redis client created with ``decode_responses=True``.
            key_prefix: Namespace for all keys written by the store.
        """
        self._client = client
        self._members_key = f"{key_prefix}:{MEMBERS_KEY}"
        self._assignments_key = f"{key_prefix}:{ASSIGNMENTS_KEY}"
        self._lease_prefix = f"{key_prefix}:{LEASE_KEY}:"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RedisCoordinationStore":
        """Create a store from application settings."""
        settings = settings or get_settings()
        client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.store_timeout_seconds,
            socket_connect_timeout=settings.store_timeout_seconds,
        )
        return cls(client, key_prefix=settings.redis_key_prefix)

    def _lease_key(self, worker_id: str) -> str:
        return f"{self._lease_prefix}{worker_id}"

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except RedisError as e:
            raise StoreUnavailableError(f"Redis is unreachable: {e}") from e

    async def add_member(self, worker_id: str) -> None:
        await self._client.sadd(self._members_key, worker_id)

    async def remove_member(self, worker_id: str) -> None:
        await self._client.srem(self._members_key, worker_id)

    async def list_members(self) -> set[str]:
        return set(await self._client.smembers(self._members_key))

    async def is_member(self, worker_id: str) -> bool:
        return bool(await self._client.sismember(self._members_key, worker_id))

    async def set_assignment(self, worker_id: str, record_ids: Iterable[str]) -> None:
        await self._client.hset(self._assignments_key, worker_id, encode_assignment(record_ids))

    async def init_assignment(self, worker_id: str) -> bool:
        return bool(await self._client.hsetnx(self._assignments_key, worker_id, encode_assignment([])))

    async def get_assignment(self, worker_id: str) -> list[str] | None:
        raw = await self._client.hget(self._assignments_key, worker_id)
        if raw is None:
            return None
        return decode_assignment(raw)

    async def delete_assignment(self, worker_id: str) -> None:
        await self._client.hdel(self._assignments_key, worker_id)

    async def list_assignments(self) -> dict[str, list[str]]:
        raw = await self._client.hgetall(self._assignments_key)
        return {worker_id: decode_assignment(value) for worker_id, value in raw.items()}

    async def replace_assignments(self, assignments: Mapping[str, Iterable[str]]) -> None:
        encoded = {
            worker_id: encode_assignment(record_ids)
            for worker_id, record_ids in assignments.items()
        }
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(self._assignments_key)
            if encoded:
                pipe.hset(self._assignments_key, mapping=encoded)
            await pipe.execute()

        logger.debug(
            "Replaced assignments",
            extra={"workers": len(encoded), "key": self._assignments_key},
        )

    async def clear_assignments(self) -> None:
        await self._client.delete(self._assignments_key)

    async def refresh_lease(self, worker_id: str, ttl_seconds: int) -> None:
        await self._client.set(self._lease_key(worker_id), "1", ex=ttl_seconds)

    async def has_lease(self, worker_id: str) -> bool:
        return bool(await self._client.exists(self._lease_key(worker_id)))

    async def drop_lease(self, worker_id: str) -> None:
        await self._client.delete(self._lease_key(worker_id))

    async def live_members(self) -> set[str]:
        members = sorted(await self.list_members())
        if not members:
            return set()
        leases = await self._client.mget([self._lease_key(worker_id) for worker_id in members])
        return {worker_id for worker_id, lease in zip(members, leases) if lease is not None}

    async def close(self) -> None:
        await self._client.aclose()
