"""
Process startup shared by the coordinator and the worker.
"""

import logging

from rebalancer.config import Settings
from rebalancer.coordination import RedisCoordinationStore
from rebalancer.db import close_db, get_engine, init_db
from rebalancer.errors import BootstrapError
from rebalancer.observability.tracing import instrument_sqlalchemy

logger = logging.getLogger(__name__)


async def connect_stores(settings: Settings) -> RedisCoordinationStore:
    """
    Connect to the record store and the coordination store.

    Args:
        settings: Application settings.

    Returns:
        The connected coordination store.

    Raises:
        BootstrapError: If either store is unreachable.
    """
    try:
        await init_db()
    except Exception as e:
        raise BootstrapError(f"Record store is unreachable: {e}") from e

    instrument_sqlalchemy(get_engine().sync_engine)

    store = RedisCoordinationStore.from_settings(settings)
    try:
        await store.ping()
    except Exception as e:
        await store.close()
        await close_db()
        raise BootstrapError(f"Coordination store is unreachable: {e}") from e

    logger.info("Connected to record store and coordination store")
    return store
