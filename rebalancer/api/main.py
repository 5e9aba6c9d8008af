"""
Probe server for the coordinator and worker processes.
"""

import logging
import threading

import uvicorn
from fastapi import FastAPI

from rebalancer import __version__
from rebalancer.api.routes import health_router
from rebalancer.config import get_settings
from rebalancer.constants import ProcessRole
from rebalancer.observability.tracing import instrument_fastapi

logger = logging.getLogger(__name__)


def create_app(role: ProcessRole, worker_id: str | None = None) -> FastAPI:
    """
    Create and configure the probe application.

    Args:
        role: Which process is serving the probes.
        worker_id: The worker identity, for worker processes.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="Rebalancer Probes",
        description="Liveness, readiness and metrics for rebalancer processes",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.role = role
    app.state.worker_id = worker_id

    app.include_router(health_router)

    instrument_fastapi(app)

    return app


def start_probe_server(app: FastAPI) -> threading.Thread:
    """
    Serve the probe application from a daemon thread.

    Running outside the main thread keeps uvicorn from installing its own
    SIGINT/SIGTERM handlers, which belong to the process's shutdown path.

    Args:
        app: The probe application.

    Returns:
        The started thread.
    """
    settings = get_settings()
    config = uvicorn.Config(
        app,
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
        access_log=False,
    )
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run, name="probe-server", daemon=True)
    thread.start()

    logger.info(
        "Probe server started",
        extra={"host": settings.http_host, "port": settings.http_port},
    )
    return thread
