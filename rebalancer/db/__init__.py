"""
Database module.
Contains database connection, models, and repository implementations.
"""

from rebalancer.db.connection import (
    AsyncSessionLocal,
    close_db,
    create_schema,
    get_engine,
    get_session_context,
    init_db,
)
from rebalancer.db.models import Base, WorkItem
from rebalancer.db.repository import (
    RecordStore,
    SqlRecordStore,
    WorkItemRepository,
    bootstrap_records,
)

__all__ = [
    "get_session_context",
    "get_engine",
    "init_db",
    "close_db",
    "create_schema",
    "AsyncSessionLocal",
    "WorkItem",
    "Base",
    "WorkItemRepository",
    "RecordStore",
    "SqlRecordStore",
    "bootstrap_records",
]
