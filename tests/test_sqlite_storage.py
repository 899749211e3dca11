from __future__ import annotations

import asyncio

from adapters.sqlite_storage import SQLiteStorage
from core.flags import SubscriptionFlag
from core.models import Author, Destination


def _storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "relay.db"))
    storage.init_db()
    return storage


def test_subscriptions_drive_follow_list_and_routing(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.add_subscription("10", Destination("-100"), SubscriptionFlag.PING)
    storage.add_subscription("10", Destination("42", is_dm=True), SubscriptionFlag.NONE)
    storage.add_subscription("20", Destination("-100"), SubscriptionFlag.NOTEXT | SubscriptionFlag.RETWEET)

    followed = asyncio.run(storage.list_followed_user_ids())
    subs = asyncio.run(storage.list_subscriptions_for_author("10"))

    assert followed == ["10", "20"]
    assert [(sub.destination, sub.flags) for sub in subs] == [
        (Destination("-100"), SubscriptionFlag.PING),
        (Destination("42", is_dm=True), SubscriptionFlag.NONE),
    ]


def test_resubscribing_replaces_flags(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.add_subscription("10", Destination("-100"), SubscriptionFlag.PING)

    storage.add_subscription("10", Destination("-100"), SubscriptionFlag.NOQUOTE)

    subs = asyncio.run(storage.list_subscriptions_for_author("10"))
    assert [sub.flags for sub in subs] == [SubscriptionFlag.NOQUOTE]


def test_remove_subscription(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.add_subscription("10", Destination("-100"), SubscriptionFlag.NONE)

    assert storage.remove_subscription("10", "-100") is True
    assert storage.remove_subscription("10", "-100") is False
    assert asyncio.run(storage.list_followed_user_ids()) == []


def test_listing_joins_cached_profiles(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.add_subscription("10", Destination("-100"), SubscriptionFlag.PING)
    storage.add_subscription("20", Destination("-100"), SubscriptionFlag.NONE)
    asyncio.run(storage.record_seen_author(Author(user_id="10", name="Alice", screen_name="alice")))
    storage.upsert_user(Author(user_id="10", name="Alice", screen_name="alice_renamed"))

    records = storage.list_subscriptions()

    by_id = {record.twitter_id: record for record in records}
    assert by_id["10"].screen_name == "alice_renamed"
    assert by_id["10"].flags == SubscriptionFlag.PING
    assert by_id["20"].screen_name is None


def test_init_db_is_idempotent(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.add_subscription("10", Destination("-100"), SubscriptionFlag.NONE)

    storage.init_db()

    assert len(storage.list_subscriptions()) == 1
