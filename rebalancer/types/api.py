"""
Probe response type definitions.
"""

from datetime import datetime

from pydantic import BaseModel

from rebalancer.constants import ProcessRole


class HealthResponse(BaseModel):
    """Liveness probe response."""

    status: str = "healthy"
    version: str
    role: ProcessRole
    worker_id: str | None = None
    timestamp: datetime


class ReadyResponse(BaseModel):
    """Readiness probe response."""

    ready: bool = True
