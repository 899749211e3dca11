"""Twitter filter-stream transport adapter.

Implements the core StreamTransportPort on top of an httpx streaming
request. The stream is newline-delimited JSON with blank keep-alive lines.
Every create() bumps a generation counter so a superseded connection can
never report back to the controller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable, Optional, Sequence

import httpx

from core.models import StreamError
from core.ports import StreamListener

LOGGER = logging.getLogger(__name__)

DEFAULT_STREAM_URL = "https://stream.twitter.com/1.1/statuses/filter.json"
# Keep-alives arrive every ~30s, so a silent read of 90s means a dead socket.
DEFAULT_TIMEOUT = httpx.Timeout(10.0, read=90.0)


class TwitterStream:
    """One reusable stream connection, driven by the StreamController."""

    def __init__(
        self,
        listener: StreamListener,
        bearer_token: str,
        url: str = DEFAULT_STREAM_URL,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ) -> None:
        self._listener = listener
        self._bearer_token = bearer_token
        self._url = url
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=DEFAULT_TIMEOUT))
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self._task is not None and not self._task.done()

    def create(self, user_ids: Sequence[str]) -> None:
        """Open a new connection following ``user_ids``, dropping any old one."""

        self.mark_disconnected()
        generation = self._generation
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._consume(list(user_ids), generation))

    def mark_disconnected(self) -> None:
        self._generation += 1
        task, self._task = self._task, None
        # The controller calls this from inside our own callbacks; the running
        # task just returns after the callback instead of being cancelled.
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _consume(self, user_ids: list[str], generation: int) -> None:
        data = {"follow": ",".join(user_ids), "tweet_mode": "extended"}
        headers = {"Authorization": f"Bearer {self._bearer_token}"}
        try:
            async with self._client_factory() as client:
                async with client.stream("POST", self._url, data=data, headers=headers) as response:
                    if not self._is_current(generation):
                        return
                    if response.status_code != 200:
                        self._listener.on_stream_error(
                            StreamError(
                                status=response.status_code,
                                status_text=response.reason_phrase,
                                url=str(response.url),
                            )
                        )
                        return
                    self._listener.on_stream_start()
                    async for line in response.aiter_lines():
                        if not self._is_current(generation):
                            return
                        line = line.strip()
                        if not line:
                            continue
                        try:
                            payload = json.loads(line)
                        except ValueError:
                            LOGGER.warning("Skipping malformed stream line: %.200s", line)
                            continue
                        await self._listener.on_data(payload)
        except httpx.HTTPError as exc:
            if self._is_current(generation):
                self._listener.on_stream_error(
                    StreamError(status=None, status_text=str(exc) or type(exc).__name__, url=self._url)
                )
            return
        except Exception as exc:
            LOGGER.exception("Stream connection failed unexpectedly")
            if self._is_current(generation):
                self._listener.on_stream_error(
                    StreamError(status=None, status_text=type(exc).__name__, url=self._url)
                )
            return

        if self._is_current(generation):
            self._listener.on_stream_end()
