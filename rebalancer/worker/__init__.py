"""
Worker module.
Contains the worker processing loop and its registration lifecycle.
"""

from rebalancer.worker.lifecycle import (
    deregister_worker,
    register_worker,
    resolve_worker_id,
)
from rebalancer.worker.main import Worker, run, serve

__all__ = [
    "Worker",
    "run",
    "serve",
    "register_worker",
    "deregister_worker",
    "resolve_worker_id",
]
