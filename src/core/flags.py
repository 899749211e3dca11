"""Subscription flags (core domain)."""

from __future__ import annotations

from enum import Flag, auto
from typing import Iterable


class SubscriptionFlag(Flag):
    """Inclusion rules attached to a subscription.

    - NOTEXT: skip posts without media
    - RETWEET: also relay retweets (skipped by default)
    - NOQUOTE: skip quote posts and their quoted sub-posts
    - PING: announce posts tagged with the ping hashtag
    """

    NONE = 0
    NOTEXT = auto()
    RETWEET = auto()
    NOQUOTE = auto()
    PING = auto()


FLAG_NAMES = ("notext", "retweet", "noquote", "ping")


def parse_flags(names: Iterable[str]) -> SubscriptionFlag:
    """Build a flag set from names such as ``["notext", "ping"]``."""

    flags = SubscriptionFlag.NONE
    for raw in names:
        name = raw.strip().lower()
        if not name:
            continue
        if name not in FLAG_NAMES:
            raise ValueError(f"Unknown subscription flag: {raw}")
        flags |= SubscriptionFlag[name.upper()]
    return flags


def parse_flag_string(value: str) -> SubscriptionFlag:
    """Parse a comma separated flag list (``"notext,ping"``)."""

    return parse_flags(value.split(","))


def format_flags(flags: SubscriptionFlag) -> str:
    """Return the comma separated names of the flags set in ``flags``."""

    return ",".join(name for name in FLAG_NAMES if SubscriptionFlag[name.upper()] in flags)


def flags_from_int(value: int) -> SubscriptionFlag:
    return SubscriptionFlag(int(value or 0))


def flags_to_int(flags: SubscriptionFlag) -> int:
    return flags.value
