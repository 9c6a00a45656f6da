"""Event normalization, wire serialization and dispatch."""

from flapjack_bridge.relay.adapter import (
    ACTIONS_LIST,
    ACTIONS_SIGNAL,
    build_entries,
    serialize,
    to_wire,
)
from flapjack_bridge.relay.dispatcher import EventDispatcher
from flapjack_bridge.relay.exceptions import InvalidEventError, RelayError
from flapjack_bridge.relay.factory import create_bridge
from flapjack_bridge.relay.intake import exit_status, relay_line, relay_lines
from flapjack_bridge.relay.normalizer import (
    derive_tags,
    map_severity,
    normalize,
    split_nagios_output,
)

__all__ = [
    "ACTIONS_LIST",
    "ACTIONS_SIGNAL",
    "EventDispatcher",
    "InvalidEventError",
    "RelayError",
    "build_entries",
    "create_bridge",
    "derive_tags",
    "exit_status",
    "map_severity",
    "normalize",
    "relay_line",
    "relay_lines",
    "serialize",
    "split_nagios_output",
    "to_wire",
]
