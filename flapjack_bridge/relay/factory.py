"""Convenience factory for wiring the relay stack."""

from __future__ import annotations

from flapjack_bridge.core.config import Settings
from flapjack_bridge.queue.connection import RedisQueue
from flapjack_bridge.relay.dispatcher import EventDispatcher


def create_bridge(settings: Settings) -> tuple[EventDispatcher, RedisQueue]:
    """Build the Redis queue and a dispatcher that observes it.

    The queue is not connected yet; call ``await queue.connect()``.

    Returns:
        (dispatcher, queue)
    """
    queue = RedisQueue(settings.flapjack)
    dispatcher = EventDispatcher(config=settings.flapjack, queue=queue)
    dispatcher.observe(queue)
    return dispatcher, queue
