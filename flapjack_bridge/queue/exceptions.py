"""Exception hierarchy for the queue connection."""

from __future__ import annotations


class QueueError(Exception):
    """Base exception for all queue errors."""


class QueueConnectionError(QueueError):
    """Failed to connect to Redis or to resolve the master via Sentinel."""


class QueueTransportError(QueueError):
    """A push failed mid-operation.

    ``list_name`` is the list whose push failed; ``pushed`` counts the
    entries of the same batch that were already delivered before it.
    """

    def __init__(self, message: str, list_name: str, pushed: int = 0) -> None:
        super().__init__(message)
        self.list_name = list_name
        self.pushed = pushed
