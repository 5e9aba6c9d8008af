"""
SQLAlchemy database models.
Defines the work item table.
"""

from uuid import UUID

from sqlalchemy import Integer, String, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from rebalancer.constants import WORK_ITEMS_TABLE


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class WorkItem(Base):
    """
    A unit of processable data.

    Rows are created at bootstrap and mutated only by workers, which bump
    ``value`` and stamp ``current_worker`` for every record assigned to them.
    """

    __tablename__ = WORK_ITEMS_TABLE

    # Primary key, generated by the server
    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )

    # Counter bumped on every processing pass
    value: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    # Identity of the worker that last processed the record
    current_worker: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        default=None,
    )

    def __repr__(self) -> str:
        return f"WorkItem(id={self.id}, value={self.value}, current_worker={self.current_worker})"
