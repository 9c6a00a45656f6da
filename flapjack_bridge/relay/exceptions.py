"""Exception hierarchy for event relaying."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for relay errors."""


class InvalidEventError(RelayError):
    """The inbound event does not have the expected client/check shape."""
