"""Wire serialization for the two Flapjack event schema versions."""

from __future__ import annotations

import json
from typing import Any

import structlog

from flapjack_bridge.core.types import CanonicalAlert, QueueEntry

logger = structlog.get_logger(__name__)

LEGACY_VERSION = 1
ACTIONS_VERSION = 2
KNOWN_VERSIONS = frozenset({LEGACY_VERSION, ACTIONS_VERSION})

# Flapjack 2 workers block on this list and wake for each "+" pushed to it.
ACTIONS_LIST = "events_actions"
ACTIONS_SIGNAL = "+"

_WIRE_FIELDS = (
    "entity",
    "check",
    "type",
    "state",
    "summary",
    "details",
    "time",
    "tags",
    "initial_failure_delay",
    "repeat_failure_delay",
)


def to_wire(alert: CanonicalAlert, protocol_version: int) -> dict[str, Any]:
    """Return the event mapping for *protocol_version*.

    Perfdata is only carried by the version 1 schema.
    """
    payload = {name: getattr(alert, name) for name in _WIRE_FIELDS}
    if protocol_version != ACTIONS_VERSION and alert.perfdata is not None:
        payload["perfdata"] = alert.perfdata
    return payload


def serialize(alert: CanonicalAlert, protocol_version: int) -> tuple[str, str | None]:
    """Serialize *alert* and pick the companion signal, if any.

    Unrecognised versions are logged and handled as version 1.

    Returns:
        (primary_payload, companion_signal_or_None)
    """
    if protocol_version not in KNOWN_VERSIONS:
        logger.warning(
            "unknown_flapjack_version",
            flapjack_version=protocol_version,
            fallback=LEGACY_VERSION,
        )

    payload = json.dumps(to_wire(alert, protocol_version))
    signal = ACTIONS_SIGNAL if protocol_version == ACTIONS_VERSION else None
    return payload, signal


def build_entries(
    alert: CanonicalAlert,
    protocol_version: int,
    channel: str,
) -> list[QueueEntry]:
    """Queue entries for one alert: the payload, then the wake-up signal."""
    payload, signal = serialize(alert, protocol_version)
    entries = [QueueEntry(list_name=channel, payload=payload)]
    if signal is not None:
        entries.append(QueueEntry(list_name=ACTIONS_LIST, payload=signal))
    return entries
