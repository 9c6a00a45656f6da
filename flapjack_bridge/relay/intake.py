"""Line-oriented event intake — one JSON event per line, as a pipe handler gets them."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence

import structlog

from flapjack_bridge.core.types import DispatchResult
from flapjack_bridge.queue.exceptions import QueueTransportError
from flapjack_bridge.relay.dispatcher import EventDispatcher
from flapjack_bridge.relay.exceptions import InvalidEventError

logger = structlog.get_logger(__name__)

INVALID_EVENT_STATUS = 1
DELIVERY_FAILED_STATUS = 2


def _invalid(reason: str) -> DispatchResult:
    return DispatchResult(
        message=f"invalid event, nothing sent to the flapjack redis queue: {reason}",
        status=INVALID_EVENT_STATUS,
    )


async def relay_line(dispatcher: EventDispatcher, line: str) -> DispatchResult:
    """Dispatch the event encoded in *line*.

    Bad input and failed pushes are logged and come back as a result with
    a non-zero status, so the caller can report them and carry on.
    """
    try:
        event = json.loads(line)
    except json.JSONDecodeError:
        logger.warning("intake_invalid_json", raw=line[:200])
        return _invalid("not valid JSON")
    if not isinstance(event, dict):
        logger.warning("intake_invalid_event", raw=line[:200])
        return _invalid("not a JSON object")

    try:
        return await dispatcher.process(event)
    except InvalidEventError:
        logger.exception("intake_invalid_event", raw=line[:200])
        return _invalid("missing or malformed client/check")
    except QueueTransportError as exc:
        logger.exception("intake_delivery_failed", list_name=exc.list_name)
        return DispatchResult(
            message=(
                f"failed to send an event to the flapjack redis queue "
                f"({exc.list_name}, {exc.pushed} entries sent)"
            ),
            status=DELIVERY_FAILED_STATUS,
        )


async def relay_lines(
    dispatcher: EventDispatcher,
    lines: Iterable[str],
) -> list[DispatchResult]:
    """Dispatch every non-blank line in order, one result per event."""
    results: list[DispatchResult] = []
    for line in lines:
        if not line.strip():
            continue
        results.append(await relay_line(dispatcher, line))
    return results


def exit_status(results: Sequence[DispatchResult]) -> int:
    """Worst status across *results*; 0 when every event was handled."""
    return max((r.status for r in results), default=0)
