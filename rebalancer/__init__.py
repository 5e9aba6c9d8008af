"""
Partition Rebalancer

Assigns a dynamic pool of work records to a dynamic pool of worker processes
with consistent hashing, re-balancing whenever workers or records change.
"""

__version__ = "1.0.0"
