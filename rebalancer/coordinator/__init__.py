"""
Coordinator module.
Contains the change-detection loop that publishes worker assignments.
"""

from rebalancer.coordinator.main import Coordinator, run

__all__ = ["Coordinator", "run"]
