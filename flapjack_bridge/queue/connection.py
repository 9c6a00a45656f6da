"""Redis list queue — direct or Sentinel-discovered master, with state hooks."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Awaitable, Callable, Sequence

import structlog
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.asyncio.sentinel import Sentinel
from redis.backoff import ExponentialBackoff, NoBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from flapjack_bridge.core.config import FlapjackConfig
from flapjack_bridge.core.types import ConnectionState, QueueEntry
from flapjack_bridge.queue.exceptions import QueueConnectionError, QueueTransportError

logger = structlog.get_logger(__name__)

# (previous_state, new_state)
StateCallback = Callable[[ConnectionState, ConnectionState], Awaitable[None] | None]
ErrorCallback = Callable[[QueueConnectionError], Awaitable[None] | None]


class EventQueue(abc.ABC):
    """Destination for serialized alerts."""

    @abc.abstractmethod
    async def push(self, entries: Sequence[QueueEntry]) -> None:
        """Push entries in order. Raises QueueTransportError on failure."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release the underlying connection."""


class RedisQueue(EventQueue):
    """Pushes alerts onto Redis lists with ``LPUSH``.

    The client is addressed either directly (host/port/db) or through
    Sentinel when ``config.master`` is set. Reconnect and backoff are left
    to redis-py's ``Retry`` policy; this class only tracks the resulting
    state transitions and reports them to registered observers::

        queue = RedisQueue(settings.flapjack)
        queue.on_state_change(log_transition)
        queue.on_error(log_error)
        await queue.connect()
        await queue.push([QueueEntry(list_name="events", payload=body)])
    """

    def __init__(self, config: FlapjackConfig) -> None:
        self._config = config
        self._client: Redis | None = None
        self._sentinel: Sentinel | None = None
        self._state = ConnectionState.DISCONNECTED
        # Keeps a payload and its companion signal adjacent in the queue.
        self._lock = asyncio.Lock()
        self._state_callbacks: list[StateCallback] = []
        self._error_callbacks: list[ErrorCallback] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def address(self) -> str:
        if self._config.uses_sentinel:
            return f"sentinel:{self._config.master}"
        return f"{self._config.host}:{self._config.port}/{self._config.db}"

    def on_state_change(self, callback: StateCallback) -> None:
        """Register a callback for connection state transitions."""
        self._state_callbacks.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        """Register a callback for connection failures."""
        self._error_callbacks.append(callback)

    # ── Lifecycle ───────────────────────────────────────────────

    async def connect(self) -> bool:
        """Open the connection and verify it with PING.

        In Sentinel mode the master is resolved first. A failure is
        reported to the ``on_error`` callbacks rather than raised; the queue
        stays usable and later pushes will try again.

        Returns:
            True if the server answered.
        """
        client = self._ensure_client()
        try:
            if self._config.uses_sentinel:
                await self.discover_master()
            await client.ping()
        except (QueueConnectionError, RedisError) as exc:
            await self._report_unavailable(exc)
            return False

        logger.info("queue_connected", address=self.address)
        await self._set_state(ConnectionState.CONNECTED)
        return True

    async def discover_master(self) -> tuple[str, int]:
        """Ask the configured sentinels for the current master address.

        Unreachable sentinels are skipped; only when none of them can name
        the master does this fail.

        Raises:
            QueueConnectionError: No sentinel topology is configured or no
                sentinel resolved the master.
        """
        if not self._config.uses_sentinel:
            raise QueueConnectionError("No sentinel topology configured")
        sentinel = self._ensure_sentinel()
        try:
            host, port = await sentinel.discover_master(self._config.master)
        except RedisError as exc:
            raise QueueConnectionError(
                f"No sentinel could resolve master {self._config.master!r}"
            ) from exc

        logger.info(
            "sentinel_master_discovered",
            master=self._config.master,
            host=host,
            port=port,
        )
        return host, int(port)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._sentinel is not None:
            for sentinel_client in self._sentinel.sentinels:
                await sentinel_client.aclose()
            self._sentinel = None
        await self._set_state(ConnectionState.DISCONNECTED)

    # ── Push ────────────────────────────────────────────────────

    async def push(self, entries: Sequence[QueueEntry]) -> None:
        """LPUSH every entry in order, holding the lock for the whole batch.

        Raises:
            QueueTransportError: A push failed; earlier entries of the batch
                have already been delivered.
        """
        client = self._ensure_client()
        failure: QueueTransportError | None = None

        async with self._lock:
            pushed = 0
            for entry in entries:
                try:
                    await client.lpush(entry.list_name, entry.payload)
                except RedisError as exc:
                    failure = QueueTransportError(
                        f"LPUSH to {entry.list_name!r} failed after "
                        f"{pushed} of {len(entries)} entries: {exc}",
                        list_name=entry.list_name,
                        pushed=pushed,
                    )
                    failure.__cause__ = exc
                    break
                pushed += 1

        if failure is not None:
            await self._set_state(self._lost_state())
            raise failure
        await self._set_state(ConnectionState.CONNECTED)

    # ── Internal ────────────────────────────────────────────────

    def _retry_policy(self) -> Retry:
        if not self._config.auto_reconnect:
            return Retry(NoBackoff(), 0)
        return Retry(
            ExponentialBackoff(
                cap=self._config.reconnect_cap_secs,
                base=self._config.reconnect_base_secs,
            ),
            self._config.reconnect_attempts,
        )

    def _connection_kwargs(self) -> dict[str, object]:
        password = self._config.password
        return {
            "db": self._config.db,
            "password": password.get_secret_value() if password else None,
            "socket_timeout": self._config.socket_timeout,
            "socket_connect_timeout": self._config.socket_timeout,
            "retry": self._retry_policy(),
            "retry_on_error": [RedisConnectionError, RedisTimeoutError],
            "decode_responses": True,
        }

    def _ensure_sentinel(self) -> Sentinel:
        if self._sentinel is None:
            self._sentinel = Sentinel(
                [(s.host, s.port) for s in self._config.sentinels],
                sentinel_kwargs={"socket_timeout": self._config.socket_timeout},
            )
        return self._sentinel

    def _ensure_client(self) -> Redis:
        if self._client is None:
            if self._config.uses_sentinel:
                self._client = self._ensure_sentinel().master_for(
                    self._config.master,
                    redis_class=Redis,
                    **self._connection_kwargs(),
                )
            else:
                self._client = Redis(
                    host=self._config.host,
                    port=self._config.port,
                    **self._connection_kwargs(),
                )
        return self._client

    async def _report_unavailable(self, exc: Exception) -> None:
        if isinstance(exc, QueueConnectionError):
            error = exc
        else:
            error = QueueConnectionError(
                f"Flapjack Redis instance not available on {self.address}"
            )
            error.__cause__ = exc
        logger.warning("queue_unavailable", address=self.address, error=str(exc))
        await self._set_state(self._lost_state())
        await self._emit_error(error)

    def _lost_state(self) -> ConnectionState:
        if self._config.auto_reconnect:
            return ConnectionState.RECONNECTING
        return ConnectionState.DISCONNECTED

    async def _set_state(self, new_state: ConnectionState) -> None:
        previous = self._state
        if previous == new_state:
            return
        self._state = new_state
        for cb in self._state_callbacks:
            try:
                result = cb(previous, new_state)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception(
                    "queue_state_callback_error",
                    previous=previous,
                    state=new_state,
                )

    async def _emit_error(self, error: QueueConnectionError) -> None:
        for cb in self._error_callbacks:
            try:
                result = cb(error)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("queue_error_callback_error", address=self.address)
