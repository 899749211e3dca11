from __future__ import annotations

import asyncio
from typing import Any

from core.backoff import Backoff
from core.config import StreamConfig
from core.models import StreamError
from core.stream_controller import ControllerState, StreamController


class FakeTransport:
    def __init__(self) -> None:
        self.created: list[list[str]] = []
        self.disconnects = 0

    def create(self, user_ids) -> None:
        self.created.append(list(user_ids))

    def mark_disconnected(self) -> None:
        self.disconnects += 1


class Harness:
    def __init__(self, config: StreamConfig, ids: tuple[str, ...] = ("1", "2")) -> None:
        self.transport = FakeTransport()
        self.factory_calls = 0
        self.handled: list[Any] = []
        self.ids = list(ids)
        self.controller = StreamController(
            transport_factory=self._factory,
            handler=self._handle,
            config=config,
            followed_ids=self._followed_ids,
        )

    def _factory(self, listener) -> FakeTransport:
        self.factory_calls += 1
        assert listener is self.controller
        return self.transport

    async def _handle(self, payload: Any) -> None:
        self.handled.append(payload)

    async def _followed_ids(self) -> list[str]:
        return list(self.ids)


FAST = StreamConfig(watchdog_seconds=0, reconnect_start_ms=10, reconnect_max_ms=40)


def test_no_ids_means_no_stream() -> None:
    async def scenario() -> None:
        harness = Harness(FAST, ids=())
        await harness.controller.restart()

        assert harness.controller.state is ControllerState.IDLE
        assert harness.factory_calls == 0

    asyncio.run(scenario())


def test_start_then_stream_start_resets_backoff() -> None:
    async def scenario() -> None:
        harness = Harness(FAST)
        controller = harness.controller
        controller.backoff.advance()

        await controller.restart()
        assert controller.state is ControllerState.CONNECTING
        assert harness.transport.created == [["1", "2"]]

        controller.on_stream_start()
        assert controller.state is ControllerState.STREAMING
        assert controller.backoff.value == 10

    asyncio.run(scenario())


def test_stream_end_reconnects_after_backoff_with_fresh_ids() -> None:
    async def scenario() -> None:
        harness = Harness(FAST)
        controller = harness.controller
        await controller.restart()
        controller.on_stream_start()
        harness.ids = ["1", "2", "3"]

        controller.on_stream_end()
        assert controller.state is ControllerState.RECONNECT_PENDING
        assert controller.backoff.value == 20

        await asyncio.sleep(0.1)
        assert harness.transport.created[-1] == ["1", "2", "3"]
        assert controller.state is ControllerState.CONNECTING
        assert not controller.reconnect_pending
        controller.destroy()

    asyncio.run(scenario())


def test_rate_limit_jumps_to_the_floor() -> None:
    async def scenario() -> None:
        config = StreamConfig(reconnect_start_ms=2000, reconnect_max_ms=240000, rate_limit_floor_ms=30000)
        harness = Harness(config)
        controller = harness.controller
        await controller.restart()
        loop = asyncio.get_running_loop()

        controller.on_stream_error(StreamError(status=420, status_text="Enhance Your Calm"))

        assert controller.reconnect_pending
        assert controller._reconnect_handle.when() - loop.time() >= 29.5
        assert controller.backoff.value == 60000
        controller.destroy()

    asyncio.run(scenario())


def test_other_errors_use_the_natural_schedule() -> None:
    async def scenario() -> None:
        harness = Harness(StreamConfig(reconnect_start_ms=2000))
        controller = harness.controller
        await controller.restart()
        loop = asyncio.get_running_loop()

        controller.on_stream_error(StreamError(status=503, status_text="Service Unavailable"))

        assert controller._reconnect_handle.when() - loop.time() <= 2.0
        assert controller.backoff.value == 4000
        assert harness.transport.disconnects == 1
        controller.destroy()

    asyncio.run(scenario())


def test_repeated_errors_keep_a_single_timer() -> None:
    async def scenario() -> None:
        harness = Harness(FAST)
        controller = harness.controller
        await controller.restart()

        controller.on_stream_error(StreamError(status=None, status_text="reset"))
        controller.on_stream_error(StreamError(status=None, status_text="reset"))
        await asyncio.sleep(0.15)

        assert len(harness.transport.created) == 2
        controller.destroy()

    asyncio.run(scenario())


def test_start_is_ignored_while_reconnect_pending() -> None:
    async def scenario() -> None:
        harness = Harness(StreamConfig(reconnect_start_ms=1000))
        controller = harness.controller
        await controller.restart()
        controller.on_stream_end()

        controller.start(["7"])

        assert harness.transport.created == [["1", "2"]]
        assert controller.state is ControllerState.RECONNECT_PENDING
        controller.destroy()

    asyncio.run(scenario())


def test_watchdog_restarts_a_silent_stream() -> None:
    async def scenario() -> None:
        harness = Harness(StreamConfig(watchdog_seconds=0.02, reconnect_start_ms=10))
        controller = harness.controller
        await controller.restart()
        controller.on_stream_start()
        assert controller.watchdog_armed

        await asyncio.sleep(0.08)

        assert len(harness.transport.created) >= 2
        assert harness.transport.disconnects >= 1
        controller.destroy()

    asyncio.run(scenario())


def test_watchdog_is_ignored_while_reconnect_pending() -> None:
    async def scenario() -> None:
        harness = Harness(StreamConfig(watchdog_seconds=5, reconnect_start_ms=1000))
        controller = harness.controller
        await controller.restart()
        controller.on_stream_start()
        controller.on_stream_end()
        disconnects = harness.transport.disconnects

        controller.on_watchdog_fire()

        assert controller.state is ControllerState.RECONNECT_PENDING
        assert harness.transport.created == [["1", "2"]]
        assert harness.transport.disconnects == disconnects
        controller.destroy()

    asyncio.run(scenario())


def test_data_rearms_watchdog_and_reaches_handler() -> None:
    async def scenario() -> None:
        harness = Harness(StreamConfig(watchdog_seconds=0.2))
        controller = harness.controller
        await controller.restart()
        controller.on_stream_start()

        for index in range(4):
            await asyncio.sleep(0.05)
            await controller.on_data({"id": index})

        assert harness.handled == [{"id": 0}, {"id": 1}, {"id": 2}, {"id": 3}]
        assert harness.transport.created == [["1", "2"]]
        controller.destroy()

    asyncio.run(scenario())


def test_destroy_cancels_everything() -> None:
    async def scenario() -> None:
        harness = Harness(StreamConfig(watchdog_seconds=0.01, reconnect_start_ms=10))
        controller = harness.controller
        await controller.restart()
        controller.on_stream_start()
        controller.on_stream_end()

        controller.destroy()
        await asyncio.sleep(0.05)

        assert controller.state is ControllerState.IDLE
        assert not controller.reconnect_pending
        assert not controller.watchdog_armed
        assert harness.transport.created == [["1", "2"]]

        await controller.on_data({"late": True})
        controller.on_stream_error(StreamError(status=500, status_text="late"))
        assert harness.handled == []
        assert not controller.reconnect_pending

    asyncio.run(scenario())


def test_provider_failure_reuses_last_ids() -> None:
    async def scenario() -> None:
        harness = Harness(FAST)
        controller = harness.controller
        await controller.restart()

        async def broken() -> list[str]:
            raise RuntimeError("db locked")

        controller._followed_ids_provider = broken
        await controller.restart()

        assert harness.transport.created == [["1", "2"], ["1", "2"]]

    asyncio.run(scenario())


def test_custom_backoff_is_used() -> None:
    controller = StreamController(lambda listener: FakeTransport(), handler=None, backoff=Backoff(5, 50))

    assert controller.backoff.value == 5
    assert controller.state is ControllerState.IDLE


def test_too_many_requests_also_jumps_to_the_floor() -> None:
    async def scenario() -> None:
        harness = Harness(StreamConfig())
        controller = harness.controller
        await controller.restart()
        controller.on_stream_start()
        loop = asyncio.get_running_loop()

        controller.on_stream_error(StreamError(status=429, status_text="Too Many Requests"))

        assert controller._reconnect_handle.when() - loop.time() >= 29.5
        assert controller.backoff.value == 60000
        controller.destroy()

    asyncio.run(scenario())


def test_dropping_the_last_user_closes_the_stream() -> None:
    async def scenario() -> None:
        harness = Harness(StreamConfig(watchdog_seconds=5))
        controller = harness.controller
        await controller.restart()
        controller.on_stream_start()
        assert controller.watchdog_armed

        controller.start([])

        assert controller.state is ControllerState.IDLE
        assert harness.transport.disconnects == 1
        assert not controller.watchdog_armed
        assert controller.followed_ids == []

        controller.start([])
        assert harness.transport.disconnects == 1
        controller.destroy()

    asyncio.run(scenario())
