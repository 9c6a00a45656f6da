"""structlog wiring for the relay.

Everything is routed through the stdlib root logger to stderr (or a given
stream). Stdout is left to the relay entrypoint, which prints one result
line per event for the monitoring daemon to read.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

from flapjack_bridge.core.config import LoggingConfig

# Third-party loggers held at WARNING or above whatever level is configured.
# redis-py logs every retried command at DEBUG.
QUIET_LOGGERS = ("redis",)


def _pre_chain() -> list[structlog.types.Processor]:
    # Applied to structlog events and to plain stdlib records alike, so redis
    # warnings carry the same keys as our own events.
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def _relay_handler(stream: TextIO, fmt: str) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(fmt),
            ],
        )
    )
    return handler


def setup_logging(
    config: LoggingConfig | None = None,
    level: str | None = None,
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Install the relay's log handler on the root logger.

    ``level`` and ``fmt`` override the configured values; an unknown level
    name falls back to INFO and any format other than ``"console"`` renders
    JSON.
    """
    config = config or LoggingConfig()
    log_level = logging.getLevelName((level or config.level).upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    structlog.configure(
        processors=[
            *_pre_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_relay_handler(stream or sys.stderr, fmt or config.format))
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
