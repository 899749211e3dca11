"""Telegram client factory for tweetrelay.

We explicitly manage the client's lifecycle (connect/authorize/disconnect)
so it is obvious when the delivery session is created and when it ends.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    API_ID/API_HASH are read via python-dotenv to keep secrets out of the
    repo. The session name defaults to "tweetrelay" to create a local
    .session file.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "tweetrelay")

    # Credentials are required before any login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client")

    return TelegramClient(session_name, int(api_id), api_hash)


def twitter_bearer_token() -> str:
    """Return the Twitter bearer token used by the stream and REST adapters."""

    load_dotenv()
    token = os.getenv("TWITTER_BEARER_TOKEN")
    if not token:
        raise RuntimeError("Missing TWITTER_BEARER_TOKEN in environment")
    return token
