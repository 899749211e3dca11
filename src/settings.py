"""Static configuration for tweetrelay.

All user-editable settings (stream, rendering, dispatch, logging) live in a
single JSON file for quick edits without touching Python. Secrets stay in the
environment (.env).
"""

import json
import os

from core.config import RenderConfig, StreamConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the SQLite database.
DB_PATH = os.getenv("TWEETRELAY_DB", os.path.join(PROJECT_ROOT, "tweetrelay.db"))

# Stream, render, dispatch and logging settings.
CONFIG_PATH = os.getenv("TWEETRELAY_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Stream controller settings.
# - url: filter stream endpoint
# - watchdog_seconds: reconnect after this long without posts (0 disables)
# - reconnect_start_ms / reconnect_max_ms: exponential backoff bounds
# - rate_limit_floor_ms: minimum delay after a rate-limit response
# - rate_limit_statuses: HTTP statuses treated as rate limiting
_stream = _CONFIG.get("stream", {})
STREAM_URL = _stream.get("url", "https://stream.twitter.com/1.1/statuses/filter.json")
STREAM = StreamConfig(
    watchdog_seconds=float(_stream.get("watchdog_seconds", 0)),
    reconnect_start_ms=int(_stream.get("reconnect_start_ms", 2000)),
    reconnect_max_ms=int(_stream.get("reconnect_max_ms", 240000)),
    rate_limit_floor_ms=int(_stream.get("rate_limit_floor_ms", 30000)),
    rate_limit_statuses=tuple(int(status) for status in _stream.get("rate_limit_statuses", (420, 429))),
)
# How often the follow list is compared with the database (0 disables).
STREAM_REFRESH_SECONDS = float(_stream.get("refresh_seconds", 300))

# Rendering thresholds.
_render = _CONFIG.get("render", {})
RENDER = RenderConfig(
    video_bitrate_ceiling=int(_render.get("video_bitrate_ceiling", 1_000_000)),
    video_duration_cutoff_ms=int(_render.get("video_duration_cutoff_ms", 20_000)),
    ping_hashtag=str(_render.get("ping_hashtag", "qtweet")),
)
UNFURL_TIMEOUT = float(_render.get("unfurl_timeout", 10.0))

# Dispatch method switches adapters without changing core logic.
# - "client": Telethon session (user or bot account)
# - "bot": Telegram Bot API over HTTPS
_dispatch = _CONFIG.get("dispatch", {})
DISPATCH_METHOD = _dispatch.get("method", "client")
ANNOUNCEMENT = _dispatch.get("announcement", "@everyone")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
