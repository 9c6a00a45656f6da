"""Redis queue connection and its exception hierarchy."""

from flapjack_bridge.queue.connection import EventQueue, RedisQueue
from flapjack_bridge.queue.exceptions import (
    QueueConnectionError,
    QueueError,
    QueueTransportError,
)

__all__ = [
    "EventQueue",
    "QueueConnectionError",
    "QueueError",
    "QueueTransportError",
    "RedisQueue",
]
