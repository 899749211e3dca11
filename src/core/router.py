"""Subscription routing (core domain).

Decides which subscriptions receive a post. Routing is a pure function of
the post and the author's subscriptions; the store lookup lives in a thin
async wrapper so the rules stay easy to test.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from core.flags import SubscriptionFlag
from core.media import has_media
from core.models import DispatchTarget, RawPost, Subscription
from core.ports import SubscriptionStorePort

LOGGER = logging.getLogger(__name__)


def is_valid(post: Optional[RawPost]) -> bool:
    """A post is routable when it has an author and a resolvable quote."""

    if post is None or post.author is None:
        return False
    if post.is_quote_status:
        quoted = post.quoted_status
        if quoted is None or quoted.author is None:
            return False
    return True


def is_foreign_reply(post: RawPost) -> bool:
    """True for replies to someone else; self-replies (threads) are kept."""

    reply_to = post.in_reply_to_user_id
    return bool(reply_to) and post.author is not None and reply_to != post.author.user_id


def flags_allow(flags: SubscriptionFlag, post: RawPost) -> bool:
    """Return whether a subscription with ``flags`` should receive ``post``."""

    if SubscriptionFlag.NOTEXT in flags and not has_media(post):
        return False
    if SubscriptionFlag.RETWEET not in flags and post.retweeted_status is not None:
        return False
    if SubscriptionFlag.NOQUOTE in flags and post.is_quote_status:
        return False
    return True


def route(post: RawPost, subscriptions: Optional[Iterable[Subscription]]) -> List[DispatchTarget]:
    """Return the dispatch targets for ``post`` among the author's subscriptions."""

    if not is_valid(post):
        return []
    subs = list(subscriptions or [])
    if not subs or is_foreign_reply(post):
        return []

    targets: List[DispatchTarget] = []
    for sub in subs:
        if sub.destination.is_dm:
            LOGGER.debug("Should we post %s in DM %s?", post.post_id, sub.destination.channel_id)
        if flags_allow(sub.flags, post):
            targets.append(DispatchTarget(destination=sub.destination, flags=sub.flags))
    return targets


class SubscriptionRouter:
    """Looks up the author's subscriptions and applies the routing rules."""

    def __init__(self, store: SubscriptionStorePort) -> None:
        self._store = store

    async def targets_for(self, post: RawPost) -> List[DispatchTarget]:
        if not is_valid(post):
            return []
        subscriptions = await self._store.list_subscriptions_for_author(post.author.user_id)
        return route(post, subscriptions)
