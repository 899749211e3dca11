"""State containers for the config panel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.flags import SubscriptionFlag
from core.models import Author, Destination


@dataclass
class ConfigState:
    data: dict[str, Any] | None = None
    dirty: bool = False
    error: str | None = None


@dataclass
class NewSubscription:
    """Result of the add-subscription form, ready to be stored."""

    author: Author
    destination: Destination
    flags: SubscriptionFlag
