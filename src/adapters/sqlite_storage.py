"""SQLite storage adapter.

Implements the core SubscriptionStorePort using a simple SQLite database,
plus the synchronous helpers the CLI and config panel use to manage
subscriptions.
"""

from __future__ import annotations

from dataclasses import dataclass
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from core.flags import SubscriptionFlag, flags_from_int, flags_to_int
from core.models import Author, Destination, Subscription


@dataclass(frozen=True)
class SubscriptionRecord:
    """A stored subscription joined with the cached author handle."""

    twitter_id: str
    screen_name: Optional[str]
    destination: Destination
    flags: SubscriptionFlag


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the SubscriptionStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - users: cached profile of every followed author
        - subscriptions: one row per (author, destination) pair
        """

        with self._connect() as conn:
            # users is refreshed every time one of their posts is relayed.
            # Fields:
            # - twitter_id: numeric user id as a string (PRIMARY KEY)
            # - screen_name / name / avatar_url: last seen profile values
            # - updated_at: timestamp of the last refresh
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    twitter_id TEXT PRIMARY KEY,
                    screen_name TEXT,
                    name TEXT,
                    avatar_url TEXT,
                    updated_at TIMESTAMP
                )
                """
            )
            # subscriptions drive both the stream's follow list and routing.
            # Fields:
            # - twitter_id: followed author
            # - channel_id: destination chat id
            # - is_dm: 1 when the destination is a direct chat
            # - flags: SubscriptionFlag bit set
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    twitter_id TEXT NOT NULL,
                    channel_id TEXT NOT NULL,
                    is_dm INTEGER NOT NULL DEFAULT 0,
                    flags INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP,
                    UNIQUE (twitter_id, channel_id)
                )
                """
            )

    async def list_followed_user_ids(self) -> list[str]:
        """Return every author id with at least one subscription."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT twitter_id FROM subscriptions ORDER BY twitter_id"
            ).fetchall()
        return [row["twitter_id"] for row in rows]

    async def list_subscriptions_for_author(self, author_id: str) -> list[Subscription]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT channel_id, is_dm, flags FROM subscriptions WHERE twitter_id = ? ORDER BY id",
                (author_id,),
            ).fetchall()
        return [
            Subscription(
                destination=Destination(channel_id=row["channel_id"], is_dm=bool(row["is_dm"])),
                flags=flags_from_int(row["flags"]),
            )
            for row in rows
        ]

    async def record_seen_author(self, author: Author) -> None:
        self.upsert_user(author)

    def upsert_user(self, author: Author) -> None:
        """Insert or refresh the cached profile of an author."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (twitter_id, screen_name, name, avatar_url, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(twitter_id) DO UPDATE SET
                    screen_name = excluded.screen_name,
                    name = excluded.name,
                    avatar_url = excluded.avatar_url,
                    updated_at = excluded.updated_at
                """,
                (author.user_id, author.screen_name, author.name, author.avatar_url, now.isoformat()),
            )

    def add_subscription(self, twitter_id: str, destination: Destination, flags: SubscriptionFlag) -> None:
        """Upsert a subscription; re-subscribing replaces the flags."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO subscriptions (twitter_id, channel_id, is_dm, flags, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(twitter_id, channel_id) DO UPDATE SET
                    is_dm = excluded.is_dm,
                    flags = excluded.flags
                """,
                (
                    twitter_id,
                    destination.channel_id,
                    int(destination.is_dm),
                    flags_to_int(flags),
                    now.isoformat(),
                ),
            )

    def remove_subscription(self, twitter_id: str, channel_id: str) -> bool:
        """Delete a subscription and return whether one existed."""

        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM subscriptions WHERE twitter_id = ? AND channel_id = ?",
                (twitter_id, channel_id),
            )
            return cur.rowcount > 0

    def list_subscriptions(self) -> list[SubscriptionRecord]:
        """Return all subscriptions with the cached author handle."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT s.twitter_id, u.screen_name, s.channel_id, s.is_dm, s.flags
                FROM subscriptions AS s
                LEFT JOIN users AS u ON u.twitter_id = s.twitter_id
                ORDER BY u.screen_name, s.channel_id
                """
            ).fetchall()
        return [
            SubscriptionRecord(
                twitter_id=row["twitter_id"],
                screen_name=row["screen_name"],
                destination=Destination(channel_id=row["channel_id"], is_dm=bool(row["is_dm"])),
                flags=flags_from_int(row["flags"]),
            )
            for row in rows
        ]
