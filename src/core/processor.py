"""Core post processing pipeline.

This module is integration-agnostic. It only relies on ports for storage,
link metadata and delivery, enabling other transports or chat backends
without changes here.
"""

from __future__ import annotations

import logging

from core.flags import SubscriptionFlag
from core.models import DispatchDescriptor, DispatchTarget, PayloadKind, RawPost
from core.ports import DispatcherPort, SubscriptionStorePort
from core.rendering import TweetRenderer
from core.router import SubscriptionRouter

LOGGER = logging.getLogger(__name__)

DEFAULT_ANNOUNCEMENT = "@everyone"


class PostProcessor:
    """Orchestrates routing, rendering and delivery for one post at a time."""

    def __init__(
        self,
        store: SubscriptionStorePort,
        renderer: TweetRenderer,
        dispatcher: DispatcherPort,
        announcement: str = DEFAULT_ANNOUNCEMENT,
    ) -> None:
        self._store = store
        self._router = SubscriptionRouter(store)
        self._renderer = renderer
        self._dispatcher = dispatcher
        self._announcement = announcement

    async def handle(self, post: RawPost) -> None:
        """Process one post through the core pipeline."""

        targets = await self._router.targets_for(post)
        if not targets:
            LOGGER.debug("Discarded post %s", post.post_id)
            return

        LOGGER.info("Received post %s, forwarding to %s subscriptions", post.post_id, len(targets))
        # Render once and reuse the same message for every destination.
        message = await self._renderer.render(post)
        if message is None:
            return

        for target in targets:
            if message.should_ping and SubscriptionFlag.PING in target.flags:
                await self._deliver(target, self._announcement, PayloadKind.ANNOUNCEMENT)
            if target.destination.is_dm:
                LOGGER.debug("Posting %s to DM %s", post.post_id, target.destination.channel_id)
            await self._deliver(target, message, PayloadKind.MESSAGE)

        if post.is_quote_status and post.quoted_status is not None:
            quoted = await self._renderer.render(post.quoted_status, quoted=True)
            if quoted is not None:
                for target in targets:
                    if SubscriptionFlag.NOQUOTE not in target.flags:
                        await self._deliver(target, quoted, PayloadKind.MESSAGE)

        await self._store.record_seen_author(post.author)

    async def _deliver(self, target: DispatchTarget, payload, kind: PayloadKind) -> None:
        descriptor = DispatchDescriptor(destination=target.destination, payload=payload, kind=kind)
        # A failing destination (kicked bot, deleted chat) must not block the others.
        try:
            await self._dispatcher.deliver(descriptor)
        except Exception:
            LOGGER.exception("Delivery to %s failed", target.destination.channel_id)
