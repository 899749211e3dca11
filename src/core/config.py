"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StreamConfig:
    """Reconnection and inactivity settings for the stream controller.

    Backoff values are milliseconds, the watchdog delay is seconds (0 or a
    negative value disables the watchdog).
    """

    watchdog_seconds: float = 0
    reconnect_start_ms: int = 2000
    reconnect_max_ms: int = 240000
    rate_limit_floor_ms: int = 30000
    rate_limit_statuses: tuple[int, ...] = (420, 429)


@dataclass(frozen=True)
class RenderConfig:
    """Rendering thresholds consumed by the tweet renderer."""

    video_bitrate_ceiling: int = 1_000_000
    video_duration_cutoff_ms: int = 20_000
    ping_hashtag: str = "qtweet"
