"""
Integration tests for the work item repository.
"""

from uuid import uuid4

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rebalancer.db import connection
from rebalancer.db.connection import get_session_context
from rebalancer.db.repository import (
    SqlRecordStore,
    WorkItemRepository,
    bootstrap_records,
)


class TestWorkItemRepository:
    """Tests for WorkItemRepository."""

    @pytest_asyncio.fixture
    async def repo(self, db_session: AsyncSession) -> WorkItemRepository:
        """Create a repository instance."""
        return WorkItemRepository(db_session)

    async def test_seed_and_list(
        self,
        repo: WorkItemRepository,
        db_session: AsyncSession,
    ):
        """Seeded rows get server-generated ids and default values."""
        inserted = await repo.seed(5)
        await db_session.commit()

        ids = await repo.list_ids()

        assert inserted == 5
        assert len(ids) == 5
        assert len(set(ids)) == 5
        assert await repo.count() == 5

        item = await repo.get(ids[0])
        assert item.value == 0
        assert item.current_worker is None

    async def test_increment(
        self,
        repo: WorkItemRepository,
        db_session: AsyncSession,
    ):
        await repo.seed(1)
        await db_session.commit()
        (record_id,) = await repo.list_ids()

        affected = await repo.increment(record_id, "worker-a")
        await db_session.commit()

        assert affected == 1
        item = await repo.get(record_id)
        assert item.value == 1
        assert item.current_worker == "worker-a"

    async def test_increment_twice_counts_twice(
        self,
        repo: WorkItemRepository,
        db_session: AsyncSession,
    ):
        await repo.seed(1)
        await db_session.commit()
        (record_id,) = await repo.list_ids()

        await repo.increment(record_id, "worker-a")
        await repo.increment(record_id, "worker-b")
        await db_session.commit()

        item = await repo.get(record_id)
        assert item.value == 2
        assert item.current_worker == "worker-b"

    async def test_increment_missing_record(self, repo: WorkItemRepository):
        """A record that does not exist affects zero rows."""
        assert await repo.increment(str(uuid4()), "worker-a") == 0

    async def test_increment_malformed_id(self, repo: WorkItemRepository):
        assert await repo.increment("not-a-uuid", "worker-a") == 0
        assert await repo.get("not-a-uuid") is None

    async def test_seed_nothing(self, repo: WorkItemRepository):
        assert await repo.seed(0) == 0
        assert await repo.count() == 0


class TestBootstrapRecords:
    """Tests for bootstrap_records and SqlRecordStore over the shared engine."""

    @pytest_asyncio.fixture
    async def shared_engine(self, async_engine, monkeypatch):
        """Point the module-level engine and session factory at the test database."""
        monkeypatch.setattr(connection, "_engine", async_engine)
        monkeypatch.setattr(
            connection,
            "AsyncSessionLocal",
            async_sessionmaker(
                bind=async_engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            ),
        )
        return async_engine

    async def _seed(self, count: int) -> set[str]:
        async with get_session_context() as session:
            repo = WorkItemRepository(session)
            await repo.seed(count)
            await session.flush()
            return set(await repo.list_ids())

    async def _ids(self) -> set[str]:
        return await SqlRecordStore().list_ids()

    async def test_reset_replaces_existing_rows(self, shared_engine):
        """With reset, the table is recreated and holds exactly the seed rows."""
        existing = await self._seed(3)

        total = await bootstrap_records(seed_count=5, reset=True)

        ids = await self._ids()
        assert total == 5
        assert len(ids) == 5
        assert not ids & existing

    async def test_keep_existing_rows(self, shared_engine):
        """Without reset, a populated table is left as it is."""
        existing = await self._seed(3)

        total = await bootstrap_records(seed_count=5, reset=False)

        assert total == 3
        assert await self._ids() == existing

    async def test_seed_empty_table_without_reset(self, shared_engine):
        total = await bootstrap_records(seed_count=5, reset=False)

        assert total == 5
        assert len(await self._ids()) == 5

    async def test_record_store_increment(self, shared_engine):
        await bootstrap_records(seed_count=2, reset=True)
        first, second = sorted(await self._ids())

        assert await SqlRecordStore().increment(first, "worker-a") == 1
        assert await SqlRecordStore().increment(str(uuid4()), "worker-a") == 0

        async with get_session_context() as session:
            repo = WorkItemRepository(session)
            bumped = await repo.get(first)
            untouched = await repo.get(second)

        assert bumped.value == 1
        assert bumped.current_worker == "worker-a"
        assert untouched.value == 0
