"""
Exceptions raised across the rebalancer.
"""


class RebalancerError(Exception):
    """Base class for rebalancer errors."""


class BootstrapError(RebalancerError):
    """
    A store was unreachable while the process was starting.

    Fatal: the process exits since no useful work is possible.
    """


class StoreUnavailableError(RebalancerError):
    """The coordination store could not be reached."""
