"""Core module — config, types, logging."""

from flapjack_bridge.core.config import (
    ConfigurationError,
    FlapjackConfig,
    LoggingConfig,
    SentinelEndpoint,
    Settings,
    load_settings,
)
from flapjack_bridge.core.logging import setup_logging
from flapjack_bridge.core.types import (
    CanonicalAlert,
    CheckResult,
    ClientInfo,
    ConnectionState,
    DispatchResult,
    QueueEntry,
    RawEvent,
)

__all__ = [
    "CanonicalAlert",
    "CheckResult",
    "ClientInfo",
    "ConfigurationError",
    "ConnectionState",
    "DispatchResult",
    "FlapjackConfig",
    "LoggingConfig",
    "QueueEntry",
    "RawEvent",
    "SentinelEndpoint",
    "Settings",
    "load_settings",
    "setup_logging",
]
