"""
API routes module.
"""

from rebalancer.api.routes.health import router as health_router

__all__ = ["health_router"]
