#!/usr/bin/env python3
"""Pipe-handler entrypoint — relays monitoring events onto the Flapjack queue.

Reads one JSON event per line from stdin (or ``--event-file``) and prints
the result message for each event. The exit status is 0 when every event
was handled, 1 when an event was rejected as invalid and 2 when a push to
the queue failed.

Usage::

    # Single event from the monitoring daemon
    echo '{"client": {...}, "check": {...}}' | python scripts/relay.py

    # Custom config file
    python scripts/relay.py --config /etc/sensu/flapjack.yaml

    # Replay recorded events
    python scripts/relay.py --event-file events.jsonl --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from flapjack_bridge.core.config import ConfigurationError, load_settings
from flapjack_bridge.core.logging import setup_logging
from flapjack_bridge.relay.factory import create_bridge
from flapjack_bridge.relay.intake import exit_status, relay_lines

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Connect, relay every input line, then close the connection."""
    try:
        settings = load_settings(args.config)
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    setup_logging(settings.logging, level=args.log_level)

    dispatcher, queue = create_bridge(settings)
    logger.info(
        "relay_starting",
        address=queue.address,
        channel=settings.flapjack.channel,
        flapjack_version=settings.flapjack.flapjack_version,
        enabled=settings.flapjack.enabled,
    )

    if settings.flapjack.enabled:
        # A failed connect is logged by the dispatcher; pushes retry on their own.
        await queue.connect()

    if args.event_file:
        with open(args.event_file) as f:
            lines = f.readlines()
    else:
        lines = sys.stdin.readlines()

    try:
        results = await relay_lines(dispatcher, lines)
    finally:
        await dispatcher.close()

    for result in results:
        print(result.message)

    logger.info(
        "relay_finished",
        events=len(results),
        delivered=sum(1 for r in results if r.delivered),
        failed=sum(1 for r in results if r.status != 0),
    )
    return exit_status(results)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Relay monitoring events to the Flapjack Redis queue.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML or JSON (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--event-file",
        default=None,
        help="Read events from this file instead of stdin",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
