"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the stream transport, subscription
storage, link metadata and delivery adapters so that the core can be reused
with different backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from core.models import Author, DispatchDescriptor, PageMetadata, StreamError, Subscription


class StreamListener(Protocol):
    """Callbacks a stream transport reports to."""

    def on_stream_start(self) -> None:
        ...

    async def on_data(self, payload: Any) -> None:
        ...

    def on_stream_error(self, error: StreamError) -> None:
        ...

    def on_stream_end(self) -> None:
        ...


class StreamTransportPort(Protocol):
    """A (re)subscribable stream connection."""

    def create(self, user_ids: Sequence[str]) -> None:
        ...

    def mark_disconnected(self) -> None:
        ...


class SubscriptionStorePort(Protocol):
    """Subscription lookups required by the core pipeline."""

    async def list_followed_user_ids(self) -> list[str]:
        ...

    async def list_subscriptions_for_author(self, author_id: str) -> list[Subscription]:
        ...

    async def record_seen_author(self, author: Author) -> None:
        ...


class MetadataResolverPort(Protocol):
    """Link unfurling. Implementations must return None instead of raising."""

    async def resolve(self, url: str) -> Optional[PageMetadata]:
        ...


class DispatcherPort(Protocol):
    """Delivery operations required by the core pipeline."""

    async def deliver(self, descriptor: DispatchDescriptor) -> None:
        ...
