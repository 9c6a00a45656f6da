"""Domain types — inbound monitoring events and the outbound alert record."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConnectionState(StrEnum):
    """Queue connection state as seen by observers."""

    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"
    DISCONNECTED = "DISCONNECTED"


# ── Inbound event ────────────────────────────────────────────────


class ClientInfo(BaseModel):
    """The monitored host that owns the check."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    address: str = ""
    tags: list[str] | None = None
    subscriptions: list[str] = Field(default_factory=list)
    environment: str | None = None
    roles: str | None = None  # space-delimited

    @field_validator("tags", mode="before")
    @classmethod
    def _drop_non_list_tags(cls, value: Any) -> Any:
        return value if isinstance(value, list) else None


class CheckResult(BaseModel):
    """A single check execution result plus its per-check overrides."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    status: int = 3
    output: str = ""
    output_type: str | None = None
    tags: list[str] | None = None
    subscribers: list[str] | None = None
    notification: str | None = None
    executed: int | float | None = None
    # Kept as sent; only a real False disables the check.
    flapjack_enabled: Any = None
    initial_failure_delay: int | None = None
    repeat_failure_delay: int | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _drop_non_list_tags(cls, value: Any) -> Any:
        return value if isinstance(value, list) else None


class RawEvent(BaseModel):
    """A client/check pair as emitted by the monitoring daemon."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    client: ClientInfo
    check: CheckResult


# ── Outbound alert ───────────────────────────────────────────────


class CanonicalAlert(BaseModel):
    """Normalised alert record, ready for serialization."""

    model_config = ConfigDict(frozen=True)

    entity: str
    check: str
    type: str = "service"
    state: str
    summary: str
    details: str
    time: int | float | None = None
    tags: list[str] = Field(default_factory=list)
    perfdata: str | None = None
    initial_failure_delay: int
    repeat_failure_delay: int


class QueueEntry(BaseModel):
    """One value to push onto a named queue list."""

    model_config = ConfigDict(frozen=True)

    list_name: str
    payload: str


class DispatchResult(BaseModel):
    """Outcome of a single dispatch, reported back to the caller."""

    model_config = ConfigDict(frozen=True)

    message: str
    status: int = 0
    delivered: bool = False
