from __future__ import annotations

import asyncio
from typing import Optional

from core.flags import SubscriptionFlag
from core.models import (
    Author,
    Destination,
    DispatchDescriptor,
    Entities,
    Hashtag,
    PageMetadata,
    PayloadKind,
    RawPost,
    Subscription,
)
from core.processor import PostProcessor
from core.rendering import TweetRenderer

ALICE = Author(user_id="10", name="Alice", screen_name="alice")
BOB = Author(user_id="20", name="Bob", screen_name="bob")


class FakeStore:
    def __init__(self, subs: dict[str, list[Subscription]]) -> None:
        self.subs = subs
        self.seen: list[Author] = []

    async def list_followed_user_ids(self) -> list[str]:
        return list(self.subs)

    async def list_subscriptions_for_author(self, author_id: str) -> list[Subscription]:
        return self.subs.get(author_id, [])

    async def record_seen_author(self, author: Author) -> None:
        self.seen.append(author)


class NullResolver:
    async def resolve(self, url: str) -> Optional[PageMetadata]:
        return None


class FakeDispatcher:
    def __init__(self, failing: tuple[str, ...] = ()) -> None:
        self.failing = failing
        self.sent: list[DispatchDescriptor] = []

    async def deliver(self, descriptor: DispatchDescriptor) -> None:
        if descriptor.destination.channel_id in self.failing:
            raise RuntimeError("chat not found")
        self.sent.append(descriptor)


def _sub(channel: str, flags: SubscriptionFlag = SubscriptionFlag.NONE) -> Subscription:
    return Subscription(destination=Destination(channel_id=channel), flags=flags)


def _processor(store: FakeStore, dispatcher: FakeDispatcher) -> PostProcessor:
    return PostProcessor(store, TweetRenderer(NullResolver()), dispatcher, announcement="@here")


def _summary(dispatcher: FakeDispatcher) -> list[tuple[str, PayloadKind]]:
    return [(item.destination.channel_id, item.kind) for item in dispatcher.sent]


def test_ping_hashtag_announces_only_to_ping_subscriptions() -> None:
    store = FakeStore({"10": [_sub("a", SubscriptionFlag.PING), _sub("b")]})
    dispatcher = FakeDispatcher()
    post = RawPost(
        post_id="1",
        author=ALICE,
        text="launch #qtweet",
        entities=Entities(hashtags=(Hashtag("qtweet", (7, 14)),)),
    )

    asyncio.run(_processor(store, dispatcher).handle(post))

    assert _summary(dispatcher) == [
        ("a", PayloadKind.ANNOUNCEMENT),
        ("a", PayloadKind.MESSAGE),
        ("b", PayloadKind.MESSAGE),
    ]
    assert dispatcher.sent[0].payload == "@here"
    assert dispatcher.sent[1].payload is dispatcher.sent[2].payload
    assert store.seen == [ALICE]


def test_quote_is_followed_by_the_quoted_post() -> None:
    store = FakeStore({"10": [_sub("a"), _sub("b", SubscriptionFlag.NOQUOTE)]})
    dispatcher = FakeDispatcher()
    post = RawPost(
        post_id="1",
        author=ALICE,
        text="so true",
        is_quote_status=True,
        quoted_status=RawPost(post_id="9", author=BOB, text="hot take"),
    )

    asyncio.run(_processor(store, dispatcher).handle(post))

    assert _summary(dispatcher) == [("a", PayloadKind.MESSAGE), ("a", PayloadKind.MESSAGE)]
    assert dispatcher.sent[0].payload.author_name == "Alice (@alice)"
    assert dispatcher.sent[1].payload.author_name == "[QUOTED] Bob (@bob)"
    assert dispatcher.sent[1].payload.description == "hot take"


def test_failing_destination_does_not_block_others() -> None:
    store = FakeStore({"10": [_sub("gone"), _sub("ok")]})
    dispatcher = FakeDispatcher(failing=("gone",))

    asyncio.run(_processor(store, dispatcher).handle(RawPost(post_id="1", author=ALICE, text="hi")))

    assert _summary(dispatcher) == [("ok", PayloadKind.MESSAGE)]
    assert store.seen == [ALICE]


def test_unrouted_post_is_discarded() -> None:
    store = FakeStore({"10": [_sub("a")]})
    dispatcher = FakeDispatcher()
    reply = RawPost(post_id="1", author=ALICE, text="@bob no", in_reply_to_user_id="20")
    stranger = RawPost(post_id="2", author=BOB, text="hello")

    asyncio.run(_processor(store, dispatcher).handle(reply))
    asyncio.run(_processor(store, dispatcher).handle(stranger))

    assert dispatcher.sent == []
    assert store.seen == []
