"""Event dispatcher — gates, normalizes and queues one event per call."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from flapjack_bridge.core.config import FlapjackConfig
from flapjack_bridge.core.types import ConnectionState, DispatchResult, RawEvent
from flapjack_bridge.queue.connection import EventQueue, RedisQueue
from flapjack_bridge.queue.exceptions import QueueConnectionError, QueueTransportError
from flapjack_bridge.relay.adapter import build_entries
from flapjack_bridge.relay.exceptions import InvalidEventError
from flapjack_bridge.relay.normalizer import normalize

# Dedicated structured logger for per-event outcomes.
decision_logger = structlog.get_logger("dispatch_log")

logger = structlog.get_logger(__name__)

GLOBALLY_DISABLED_MESSAGE = (
    "flapjack handler has been DISABLED, check configuration file and "
    're-enable it by setting "enabled": true'
)
CHECK_DISABLED_MESSAGE = "flapjack handler is DISABLED for this check"
SENT_MESSAGE = "sent an event to the flapjack redis queue"


class EventDispatcher:
    """Relays monitoring events to the Flapjack queue.

    - Global ``enabled: false`` suppresses every event.
    - A check with ``flapjack_enabled: false`` is suppressed on its own;
      any other value, including absent, counts as enabled.
    - Everything else is normalized, serialized for the configured
      ``flapjack_version`` and pushed as one batch.

    Every outcome carries status 0. Transport failures are raised, not
    reported as a result.
    """

    def __init__(self, config: FlapjackConfig, queue: EventQueue) -> None:
        self._config = config
        self._queue = queue

    @property
    def queue(self) -> EventQueue:
        return self._queue

    async def process(self, event: RawEvent | Mapping[str, Any]) -> DispatchResult:
        """Handle a single event.

        Raises:
            InvalidEventError: *event* lacks a valid client or check.
            QueueTransportError: The push to Redis failed.
        """
        raw = self._coerce(event)
        log = decision_logger.bind(entity=raw.client.name, check=raw.check.name)

        if not self._config.enabled:
            log.info("event_skipped", reason="globally_disabled")
            return DispatchResult(message=GLOBALLY_DISABLED_MESSAGE)

        if raw.check.flapjack_enabled is False:
            log.info("event_skipped", reason="check_disabled")
            return DispatchResult(message=CHECK_DISABLED_MESSAGE)

        alert = normalize(raw, self._config)
        entries = build_entries(
            alert,
            self._config.flapjack_version,
            self._config.channel,
        )

        try:
            await self._queue.push(entries)
        except QueueTransportError as exc:
            logger.error(
                "dispatch_failed",
                entity=alert.entity,
                check=alert.check,
                list_name=exc.list_name,
                pushed=exc.pushed,
            )
            raise

        log.info(
            "event_dispatched",
            state=alert.state,
            channel=self._config.channel,
            entries=len(entries),
            flapjack_version=self._config.flapjack_version,
        )
        return DispatchResult(message=SENT_MESSAGE, delivered=True)

    def observe(self, queue: RedisQueue) -> None:
        """Log the queue's connection state transitions and errors."""
        queue.on_state_change(self._on_state_change)
        queue.on_error(self._on_queue_error)

    async def close(self) -> None:
        await self._queue.close()

    # ── Internal ────────────────────────────────────────────────

    @staticmethod
    def _coerce(event: RawEvent | Mapping[str, Any]) -> RawEvent:
        if isinstance(event, RawEvent):
            return event
        try:
            return RawEvent.model_validate(event)
        except ValidationError as exc:
            raise InvalidEventError(f"Malformed event: {exc}") from exc

    def _on_state_change(
        self,
        previous: ConnectionState,
        state: ConnectionState,
    ) -> None:
        if state == ConnectionState.RECONNECTING:
            logger.warning("queue_connection_lost", reconnecting=True)
        elif state == ConnectionState.DISCONNECTED and previous == ConnectionState.CONNECTED:
            logger.warning("queue_connection_lost", reconnecting=False)
        elif state == ConnectionState.CONNECTED and previous == ConnectionState.RECONNECTING:
            logger.info("queue_connection_restored")

    def _on_queue_error(self, error: QueueConnectionError) -> None:
        logger.warning("queue_error", error=str(error))
