"""Stream resilience controller (core domain).

Owns the stream connection lifecycle:
- IDLE: no stream yet, or torn down by destroy()
- CONNECTING: transport.create() was called, waiting for the first bytes
- STREAMING: the transport reported a successful start
- RECONNECT_PENDING: a reconnection timer is armed after an error or end

Errors and disconnects always end in a single reconnection timer whose delay
comes from the Backoff policy. The inactivity watchdog forces a reconnection
after a silent period, unless a reconnection is already pending.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence

from core.backoff import Backoff
from core.config import StreamConfig
from core.models import StreamError
from core.ports import StreamListener, StreamTransportPort

LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[StreamListener], StreamTransportPort]
PostHandler = Callable[[Any], Awaitable[None]]
FollowedIdsProvider = Callable[[], Awaitable[Sequence[str]]]


class ControllerState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECT_PENDING = "reconnect_pending"


class StreamController:
    """Keeps one stream alive across disconnects, errors and silent periods."""

    def __init__(
        self,
        transport_factory: TransportFactory,
        handler: PostHandler,
        config: Optional[StreamConfig] = None,
        backoff: Optional[Backoff] = None,
        followed_ids: Optional[FollowedIdsProvider] = None,
    ) -> None:
        self._config = config or StreamConfig()
        self._transport_factory = transport_factory
        self._handler = handler
        self._backoff = backoff or Backoff(self._config.reconnect_start_ms, self._config.reconnect_max_ms)
        self._followed_ids_provider = followed_ids
        self._transport: Optional[StreamTransportPort] = None
        self._followed_ids: list[str] = []
        self._state = ControllerState.IDLE
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._watchdog_handle: Optional[asyncio.TimerHandle] = None
        self._restart_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def backoff(self) -> Backoff:
        return self._backoff

    @property
    def followed_ids(self) -> list[str]:
        return list(self._followed_ids)

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def watchdog_armed(self) -> bool:
        return self._watchdog_handle is not None

    def start(self, followed_ids: Sequence[str]) -> None:
        """(Re)subscribe the stream to ``followed_ids``."""

        if self._state is ControllerState.RECONNECT_PENDING:
            LOGGER.info("Got a new stream request but a reconnection is already pending")
            return
        ids = [str(user_id) for user_id in followed_ids]
        if not ids:
            LOGGER.info("No user IDs, no need to create a stream")
            if self._state is not ControllerState.IDLE:
                self._mark_disconnected()
            self._cancel_watchdog()
            self._followed_ids = []
            self._state = ControllerState.IDLE
            return
        if self._transport is None:
            self._transport = self._transport_factory(self)
        self._followed_ids = ids
        self._state = ControllerState.CONNECTING
        LOGGER.info("Connecting stream for %s users", len(ids))
        self._transport.create(ids)

    async def restart(self) -> None:
        """Refresh the followed ids from the provider, then start."""

        ids: Sequence[str] = self._followed_ids
        if self._followed_ids_provider is not None:
            try:
                ids = await self._followed_ids_provider()
            except Exception:
                LOGGER.exception("Could not load followed users, reusing the last known set")
        self.start(ids)

    def on_stream_start(self) -> None:
        if self._state is ControllerState.IDLE:
            return
        self._state = ControllerState.STREAMING
        LOGGER.info("Stream successfully started")
        if self._config.watchdog_seconds > 0:
            LOGGER.info("Will reconnect if inactive for %ss", self._config.watchdog_seconds)
        self._arm_watchdog()
        self._backoff.reset()

    async def on_data(self, payload: Any) -> None:
        if self._state is ControllerState.IDLE:
            return
        self._arm_watchdog()
        await self._handler(payload)

    def on_watchdog_fire(self) -> None:
        self._watchdog_handle = None
        if self._state is ControllerState.IDLE:
            return
        LOGGER.warning("%ss without posts, resetting stream", self._config.watchdog_seconds)
        if self._state is ControllerState.RECONNECT_PENDING:
            LOGGER.info("Already waiting for a reconnection, ignoring the watchdog")
            return
        self._mark_disconnected()
        self.start(self._followed_ids)

    def on_stream_error(self, error: StreamError) -> None:
        if self._state is ControllerState.IDLE:
            return
        self._mark_disconnected()
        floor = self._config.rate_limit_floor_ms
        if error.status in self._config.rate_limit_statuses and self._backoff.value < floor:
            LOGGER.info("Rate limited (%s), jumping to a %sms delay", error.status, floor)
            self._backoff.force_to(floor)
        delay = self._backoff.value
        self._backoff.advance()
        LOGGER.error(
            "Stream error (%s: %s) at %s. Reconnecting in %sms",
            error.status,
            error.status_text,
            error.url,
            delay,
        )
        self._schedule_reconnect(delay)

    def on_stream_end(self) -> None:
        if self._state is ControllerState.IDLE:
            return
        self._mark_disconnected()
        delay = self._backoff.value
        self._backoff.advance()
        LOGGER.warning("Disconnected from the stream. Reconnecting in %sms", delay)
        self._schedule_reconnect(delay)

    def destroy(self) -> None:
        """Tear down the stream and every pending timer."""

        self._mark_disconnected()
        self._cancel_reconnect()
        self._cancel_watchdog()
        if self._restart_task is not None and not self._restart_task.done():
            self._restart_task.cancel()
        self._restart_task = None
        self._state = ControllerState.IDLE

    def _mark_disconnected(self) -> None:
        if self._transport is not None:
            self._transport.mark_disconnected()

    def _schedule_reconnect(self, delay_ms: int) -> None:
        self._cancel_reconnect()
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay_ms / 1000, self._on_reconnect_timer)
        self._state = ControllerState.RECONNECT_PENDING

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        self._state = ControllerState.CONNECTING
        self._restart_task = asyncio.get_running_loop().create_task(self.restart())

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _arm_watchdog(self) -> None:
        if self._config.watchdog_seconds <= 0:
            return
        self._cancel_watchdog()
        loop = asyncio.get_running_loop()
        self._watchdog_handle = loop.call_later(self._config.watchdog_seconds, self.on_watchdog_fire)

    def _cancel_watchdog(self) -> None:
        if self._watchdog_handle is not None:
            self._watchdog_handle.cancel()
            self._watchdog_handle = None
