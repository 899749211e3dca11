"""Telegram client dispatch adapter.

Delivers relayed posts through a Telethon client (user account or bot
session) as a Markdown message followed by its media.
"""

from __future__ import annotations

import logging
from typing import Union

from adapters.message_formatting import format_message, media_urls
from core.models import Destination, DispatchDescriptor, PayloadKind

LOGGER = logging.getLogger(__name__)


def resolve_entity(destination: Destination) -> Union[int, str]:
    """Numeric ids are sent as ints, anything else (``@channel``) as-is."""

    channel_id = destination.channel_id.strip()
    if channel_id.lstrip("-").isdigit():
        return int(channel_id)
    return channel_id


class TelegramClientDispatcher:
    """DispatcherPort implementation backed by a Telethon client."""

    def __init__(self, client) -> None:
        self._client = client

    async def deliver(self, descriptor: DispatchDescriptor) -> None:
        entity = resolve_entity(descriptor.destination)
        if descriptor.kind is PayloadKind.ANNOUNCEMENT:
            await self._client.send_message(entity, str(descriptor.payload))
            return

        message = descriptor.payload
        text = format_message(message, mode="markdown")
        await self._client.send_message(entity, text, parse_mode="md", link_preview=False)
        media = media_urls(message)
        if media:
            # Telethon sends a list as an album and a single URL as one file.
            await self._client.send_file(entity, media if len(media) > 1 else media[0])
        LOGGER.debug("Delivered %s to %s", message.author_url, descriptor.destination.channel_id)
