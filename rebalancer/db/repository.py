"""
Work item repository for database operations.
Implements the record store reads and writes used by the coordinator and workers.
"""

import logging
from abc import ABC, abstractmethod
from uuid import UUID

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rebalancer.db.connection import create_schema, get_session_context
from rebalancer.db.models import WorkItem

logger = logging.getLogger(__name__)


def parse_record_id(record_id: str | UUID) -> UUID | None:
    """Parse a record identifier, returning None if it is not a UUID."""
    if isinstance(record_id, UUID):
        return record_id
    try:
        return UUID(str(record_id).strip())
    except ValueError:
        return None


class WorkItemRepository:
    """
    Repository for work item database operations.

    All writes are single-row updates; callers own the transaction.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    async def list_ids(self) -> list[str]:
        """
        Get the identifiers of all work items.

        Returns:
            Record identifiers as strings.
        """
        result = await self._session.execute(select(WorkItem.id))
        return [str(record_id) for record_id in result.scalars().all()]

    async def count(self) -> int:
        """Get the number of work items."""
        result = await self._session.execute(select(func.count()).select_from(WorkItem))
        return result.scalar() or 0

    async def get(self, record_id: str | UUID) -> WorkItem | None:
        """
        Get a work item by ID.

        Args:
            record_id: The record identifier.

        Returns:
            The WorkItem or None if not found.
        """
        uid = parse_record_id(record_id)
        if uid is None:
            return None
        result = await self._session.execute(select(WorkItem).where(WorkItem.id == uid))
        return result.scalar_one_or_none()

    async def increment(self, record_id: str | UUID, worker_id: str) -> int:
        """
        Bump a record's counter and stamp the processing worker.

        Args:
            record_id: The record identifier.
            worker_id: Identity of the worker processing the record.

        Returns:
            Number of rows affected: 0 if the record does not exist.
        """
        uid = parse_record_id(record_id)
        if uid is None:
            logger.warning("Malformed record id", extra={"record_id": str(record_id)})
            return 0

        stmt = (
            update(WorkItem)
            .where(WorkItem.id == uid)
            .values(value=WorkItem.value + 1, current_worker=worker_id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def seed(self, count: int) -> int:
        """
        Insert default work items.

        Args:
            count: Number of rows to insert.

        Returns:
            Number of rows inserted.
        """
        if count <= 0:
            return 0
        await self._session.execute(insert(WorkItem), [{"value": 0} for _ in range(count)])
        return count


class RecordStore(ABC):
    """Record store operations the coordinator and workers depend on."""

    @abstractmethod
    async def list_ids(self) -> set[str]: ...

    @abstractmethod
    async def increment(self, record_id: str, worker_id: str) -> int:
        """Bump one record, returning the number of rows affected."""


class SqlRecordStore(RecordStore):
    """
    Record store backed by the work item table.

    Each call runs in its own session so a failed update never aborts the
    updates that follow it.
    """

    async def list_ids(self) -> set[str]:
        async with get_session_context() as session:
            return set(await WorkItemRepository(session).list_ids())

    async def increment(self, record_id: str, worker_id: str) -> int:
        async with get_session_context() as session:
            return await WorkItemRepository(session).increment(record_id, worker_id)


async def bootstrap_records(seed_count: int, reset: bool = True) -> int:
    """
    Prepare the work item table for a fresh run.

    Args:
        seed_count: Default rows to insert.
        reset: Drop and recreate the table before seeding.

    Returns:
        Total number of work items after bootstrap.
    """
    await create_schema(reset=reset)

    async with get_session_context() as session:
        repo = WorkItemRepository(session)
        if reset or await repo.count() == 0:
            inserted = await repo.seed(seed_count)
            logger.info(f"Inserted {inserted} default work items")
        await session.flush()
        total = await repo.count()

    return total
