"""Telegram Bot API dispatch adapter.

Uses the Bot API for delivery so relayed posts can be sent by a bot without
a Telethon session.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from adapters.message_formatting import format_message, media_urls
from core.models import DispatchDescriptor, PayloadKind


def _media_type(url: str) -> str:
    return "video" if url.lower().endswith(".mp4") else "photo"


class TelegramBotDispatcher:
    """DispatcherPort implementation that calls the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._bot_token = bot_token
        self._timeout = timeout
        self._client = client

    def _endpoint(self, method: str) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/{method}"

    async def deliver(self, descriptor: DispatchDescriptor) -> None:
        chat_id = descriptor.destination.channel_id
        if descriptor.kind is PayloadKind.ANNOUNCEMENT:
            await self._call("sendMessage", {"chat_id": chat_id, "text": str(descriptor.payload)})
            return

        message = descriptor.payload
        await self._call(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": format_message(message, mode="html"),
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            },
        )
        media = media_urls(message)
        if len(media) > 1:
            group = [{"type": _media_type(url), "media": url} for url in media]
            await self._call("sendMediaGroup", {"chat_id": chat_id, "media": group})
        elif media:
            url = media[0]
            if _media_type(url) == "video":
                await self._call("sendVideo", {"chat_id": chat_id, "video": url})
            else:
                await self._call("sendPhoto", {"chat_id": chat_id, "photo": url})

    async def _call(self, method: str, payload: dict[str, Any]) -> None:
        if self._client is not None:
            response = await self._client.post(self._endpoint(method), json=payload)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._endpoint(method), json=payload)
        if response.status_code != 200:
            raise RuntimeError(f"Bot API error {response.status_code}: {response.text}")
