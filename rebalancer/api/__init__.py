"""
API module.
Contains the probe application served by every process.
"""

from rebalancer.api.main import create_app, start_probe_server

__all__ = ["create_app", "start_probe_server"]
