"""Tests for EventDispatcher — gating, delivery, versions, error propagation."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from flapjack_bridge.core.config import FlapjackConfig
from flapjack_bridge.core.types import ConnectionState, QueueEntry, RawEvent
from flapjack_bridge.queue.connection import EventQueue
from flapjack_bridge.queue.exceptions import QueueTransportError
from flapjack_bridge.relay.dispatcher import (
    CHECK_DISABLED_MESSAGE,
    GLOBALLY_DISABLED_MESSAGE,
    SENT_MESSAGE,
    EventDispatcher,
)
from flapjack_bridge.relay.exceptions import InvalidEventError

# ── Helpers ─────────────────────────────────────────────────────


class FakeQueue(EventQueue):
    """In-memory queue for testing."""

    def __init__(self, fail_on: str | None = None, delay: float = 0.0) -> None:
        self.pushed: list[QueueEntry] = []
        self.push_calls = 0
        self._fail_on = fail_on
        self._delay = delay
        self._lock = asyncio.Lock()
        self.closed = False

    async def push(self, entries: Sequence[QueueEntry]) -> None:
        self.push_calls += 1
        async with self._lock:
            for i, entry in enumerate(entries):
                if entry.list_name == self._fail_on:
                    raise QueueTransportError("fake error", entry.list_name, pushed=i)
                self.pushed.append(entry)
                await asyncio.sleep(self._delay)

    async def close(self) -> None:
        self.closed = True


def _event(check: dict[str, Any] | None = None, **client: Any) -> dict[str, Any]:
    client_data: dict[str, Any] = {
        "name": "web-01",
        "address": "10.0.0.5",
        "subscriptions": ["linux"],
    }
    client_data.update(client)
    check_data: dict[str, Any] = {
        "name": "disk",
        "status": 2,
        "output": "CRITICAL: disk full|/=95%;80;90",
        "output_type": "nagios",
        "executed": 1700000000,
    }
    check_data.update(check or {})
    return {"client": client_data, "check": check_data}


def _dispatcher(queue: EventQueue, **kw: Any) -> EventDispatcher:
    return EventDispatcher(config=FlapjackConfig(**kw), queue=queue)


# ── Gating ──────────────────────────────────────────────────────


class TestGating:
    async def test_globally_disabled(self) -> None:
        queue = FakeQueue()
        result = await _dispatcher(queue, enabled=False).process(_event())
        assert result.message == GLOBALLY_DISABLED_MESSAGE
        assert result.status == 0
        assert result.delivered is False
        assert queue.push_calls == 0

    async def test_check_disabled(self) -> None:
        queue = FakeQueue()
        disp = _dispatcher(queue)
        result = await disp.process(_event({"flapjack_enabled": False}))
        assert result.message == CHECK_DISABLED_MESSAGE
        assert result.status == 0
        assert queue.push_calls == 0

    async def test_check_disable_scoped_to_event(self) -> None:
        queue = FakeQueue()
        disp = _dispatcher(queue)
        await disp.process(_event({"flapjack_enabled": False}))
        result = await disp.process(_event())
        assert result.message == SENT_MESSAGE
        assert queue.push_calls == 1

    async def test_explicit_true_is_enabled(self) -> None:
        queue = FakeQueue()
        result = await _dispatcher(queue).process(_event({"flapjack_enabled": True}))
        assert result.delivered is True

    async def test_global_gate_checked_first(self) -> None:
        queue = FakeQueue()
        disp = _dispatcher(queue, enabled=False)
        result = await disp.process(_event({"flapjack_enabled": False}))
        assert result.message == GLOBALLY_DISABLED_MESSAGE

    async def test_only_literal_false_disables(self) -> None:
        for value in ("false", 0, "sometimes", None):
            queue = FakeQueue()
            result = await _dispatcher(queue).process(
                _event({"flapjack_enabled": value})
            )
            assert result.message == SENT_MESSAGE, value
            assert result.delivered is True
            assert queue.push_calls == 1


# ── Lenient input ───────────────────────────────────────────────


class TestLenientInput:
    async def test_client_tags_mapping_ignored(self) -> None:
        queue = FakeQueue()
        result = await _dispatcher(queue).process(_event(tags={"dc": "eu"}))
        assert result.delivered is True
        tags = json.loads(queue.pushed[0].payload)["tags"]
        assert "dc" not in tags
        assert "eu" not in tags

    async def test_check_tags_string_ignored(self) -> None:
        queue = FakeQueue()
        result = await _dispatcher(queue).process(_event({"tags": "prod"}))
        assert result.delivered is True
        tags = json.loads(queue.pushed[0].payload)["tags"]
        assert "prod" not in tags
        assert "p" not in tags


# ── Delivery ────────────────────────────────────────────────────


class TestDelivery:
    async def test_version_one_pushes_once(self) -> None:
        queue = FakeQueue()
        result = await _dispatcher(queue, channel="events").process(_event())
        assert result.message == SENT_MESSAGE
        assert result.status == 0
        assert result.delivered is True
        assert len(queue.pushed) == 1
        payload = json.loads(queue.pushed[0].payload)
        assert queue.pushed[0].list_name == "events"
        assert payload["perfdata"] == "/=95%;80;90"
        assert payload["summary"] == "CRITICAL: disk full"

    async def test_version_two_pushes_payload_then_signal(self) -> None:
        queue = FakeQueue()
        await _dispatcher(queue, flapjack_version=2).process(_event())
        assert [e.list_name for e in queue.pushed] == ["events", "events_actions"]
        assert queue.pushed[1].payload == "+"
        assert "perfdata" not in json.loads(queue.pushed[0].payload)

    async def test_unknown_version_behaves_like_version_one(self) -> None:
        queue = FakeQueue()
        await _dispatcher(queue, flapjack_version=5).process(_event())
        assert len(queue.pushed) == 1
        assert "perfdata" in json.loads(queue.pushed[0].payload)

    async def test_custom_channel(self) -> None:
        queue = FakeQueue()
        await _dispatcher(queue, channel="flapjack").process(_event())
        assert queue.pushed[0].list_name == "flapjack"

    async def test_check_delay_overrides_config(self) -> None:
        queue = FakeQueue()
        disp = _dispatcher(queue, initial_failure_delay=30)
        await disp.process(_event({"initial_failure_delay": 999}))
        payload = json.loads(queue.pushed[0].payload)
        assert payload["initial_failure_delay"] == 999
        assert payload["repeat_failure_delay"] == 60

    async def test_accepts_raw_event_model(self) -> None:
        queue = FakeQueue()
        event = RawEvent.model_validate(_event())
        result = await _dispatcher(queue).process(event)
        assert result.delivered is True

    async def test_concurrent_batches_not_interleaved(self) -> None:
        queue = FakeQueue(delay=0.001)
        disp = _dispatcher(queue, flapjack_version=2)
        await asyncio.gather(*(disp.process(_event()) for _ in range(5)))
        names = [e.list_name for e in queue.pushed]
        assert names == ["events", "events_actions"] * 5


# ── Errors ──────────────────────────────────────────────────────


class TestErrors:
    async def test_transport_error_propagates(self) -> None:
        queue = FakeQueue(fail_on="events")
        with pytest.raises(QueueTransportError) as exc_info:
            await _dispatcher(queue).process(_event())
        assert exc_info.value.list_name == "events"
        assert exc_info.value.pushed == 0

    async def test_signal_failure_reports_which_push(self) -> None:
        queue = FakeQueue(fail_on="events_actions")
        with pytest.raises(QueueTransportError) as exc_info:
            await _dispatcher(queue, flapjack_version=2).process(_event())
        assert exc_info.value.list_name == "events_actions"
        assert exc_info.value.pushed == 1

    async def test_transport_error_logged(self) -> None:
        queue = FakeQueue(fail_on="events")
        with patch("flapjack_bridge.relay.dispatcher.logger") as mock_log:
            with pytest.raises(QueueTransportError):
                await _dispatcher(queue).process(_event())
            assert mock_log.error.call_args[0][0] == "dispatch_failed"

    async def test_malformed_event(self) -> None:
        queue = FakeQueue()
        with pytest.raises(InvalidEventError):
            await _dispatcher(queue).process({"client": {"name": "web-01"}})
        assert queue.push_calls == 0


# ── Decision Logging ────────────────────────────────────────────


class TestDecisionLogging:
    async def test_dispatch_logged(self) -> None:
        queue = FakeQueue()
        with patch("flapjack_bridge.relay.dispatcher.decision_logger") as mock_log:
            await _dispatcher(queue).process(_event())
            mock_log.bind.assert_called_once_with(entity="web-01", check="disk")
            bound = mock_log.bind.return_value
            assert bound.info.call_args[0][0] == "event_dispatched"

    async def test_skip_logged_with_reason(self) -> None:
        queue = FakeQueue()
        with patch("flapjack_bridge.relay.dispatcher.decision_logger") as mock_log:
            await _dispatcher(queue, enabled=False).process(_event())
            bound = mock_log.bind.return_value
            assert bound.info.call_args[0][0] == "event_skipped"
            assert bound.info.call_args[1]["reason"] == "globally_disabled"


# ── Connection Observation ──────────────────────────────────────


class TestObservation:
    def test_observe_registers_callbacks(self) -> None:
        disp = _dispatcher(FakeQueue())
        redis_queue = MagicMock()
        disp.observe(redis_queue)
        redis_queue.on_state_change.assert_called_once()
        redis_queue.on_error.assert_called_once()

    def test_lost_and_restored_logged(self) -> None:
        disp = _dispatcher(FakeQueue())
        with patch("flapjack_bridge.relay.dispatcher.logger") as mock_log:
            disp._on_state_change(ConnectionState.CONNECTED, ConnectionState.RECONNECTING)
            disp._on_state_change(ConnectionState.RECONNECTING, ConnectionState.CONNECTED)
            assert mock_log.warning.call_args[0][0] == "queue_connection_lost"
            assert mock_log.info.call_args[0][0] == "queue_connection_restored"

    def test_initial_connect_not_reported_as_restored(self) -> None:
        disp = _dispatcher(FakeQueue())
        with patch("flapjack_bridge.relay.dispatcher.logger") as mock_log:
            disp._on_state_change(ConnectionState.DISCONNECTED, ConnectionState.CONNECTED)
            mock_log.info.assert_not_called()

    async def test_close_closes_queue(self) -> None:
        queue = FakeQueue()
        await _dispatcher(queue).close()
        assert queue.closed
