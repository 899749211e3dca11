"""Validation helpers for the config panel forms."""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.flags import SubscriptionFlag, parse_flag_string

_HANDLE_RE = re.compile(r"^[A-Za-z0-9_]{1,15}$")


@dataclass
class FieldResult:
    value: str | None
    error: str | None = None


def parse_handle(raw_value: str) -> FieldResult:
    handle = raw_value.strip().lstrip("@")
    if not handle:
        return FieldResult(None, "handle is required")
    if not _HANDLE_RE.match(handle):
        return FieldResult(None, "handle may only contain letters, digits and _")
    return FieldResult(handle)


def parse_chat_id(raw_value: str) -> FieldResult:
    """Accept a numeric chat id or a public @channel username."""

    value = raw_value.strip()
    if not value:
        return FieldResult(None, "chat id is required")
    if value.startswith("@"):
        if len(value) < 2 or not value[1:].replace("_", "a").isalnum():
            return FieldResult(None, "channel username is invalid")
        return FieldResult(value)
    if not _is_int(value):
        return FieldResult(None, "chat id must be numeric or start with @")
    return FieldResult(str(int(value)))


def parse_flags_input(raw_value: str) -> tuple[SubscriptionFlag | None, str | None]:
    try:
        return parse_flag_string(raw_value), None
    except ValueError as exc:
        return None, str(exc)


def _is_int(value: str) -> bool:
    try:
        int(value)
    except ValueError:
        return False
    return True
