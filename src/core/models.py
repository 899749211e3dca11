"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the Twitter payload format or to any delivery client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple, Union

if TYPE_CHECKING:
    from core.flags import SubscriptionFlag

Indices = Optional[Tuple[int, int]]


@dataclass(frozen=True)
class Author:
    """The user who wrote a post."""

    user_id: str
    name: str
    screen_name: str
    avatar_url: Optional[str] = None
    # Hex string without '#', as sent by the platform (profile_link_color).
    accent_color: Optional[str] = None


@dataclass(frozen=True)
class Mention:
    screen_name: str
    name: Optional[str]
    indices: Indices


@dataclass(frozen=True)
class UrlEntity:
    url: str
    expanded_url: Optional[str]
    indices: Indices


@dataclass(frozen=True)
class Hashtag:
    text: str
    indices: Indices


@dataclass(frozen=True)
class Entities:
    """Entity annotations with codepoint ranges into the NFC form of a text."""

    user_mentions: Tuple[Mention, ...] = ()
    urls: Tuple[UrlEntity, ...] = ()
    hashtags: Tuple[Hashtag, ...] = ()


@dataclass(frozen=True)
class VideoVariant:
    content_type: str
    url: str
    bitrate: Optional[int] = None


@dataclass(frozen=True)
class VideoInfo:
    duration_millis: Optional[int]
    variants: Tuple[VideoVariant, ...] = ()


@dataclass(frozen=True)
class MediaItem:
    """One extended media entity (photo, video or animated_gif)."""

    type: str
    media_url: Optional[str]
    video_info: Optional[VideoInfo] = None


@dataclass(frozen=True)
class ExtendedContent:
    """Long-form representation attached to posts over 140 characters."""

    full_text: Optional[str]
    entities: Optional[Entities]
    media: Tuple[MediaItem, ...] = ()


@dataclass(frozen=True)
class RawPost:
    """Untouched post payload as received from the stream."""

    post_id: str
    author: Optional[Author]
    text: Optional[str] = None
    full_text: Optional[str] = None
    entities: Optional[Entities] = None
    media: Tuple[MediaItem, ...] = ()
    extended: Optional[ExtendedContent] = None
    retweeted_status: Optional["RawPost"] = field(default=None, repr=False)
    quoted_status: Optional["RawPost"] = field(default=None, repr=False)
    in_reply_to_user_id: Optional[str] = None
    is_quote_status: bool = False


@dataclass(frozen=True)
class RenderedMessage:
    """Display-ready message built from a single post."""

    author_name: str
    author_url: str
    avatar_url: Optional[str]
    color: int
    description: str
    image_url: Optional[str] = None
    files: Tuple[str, ...] = ()
    should_ping: bool = False
    preview_url: Optional[str] = None


@dataclass(frozen=True)
class Destination:
    """Where a message is delivered: a channel/group id or a direct chat."""

    channel_id: str
    is_dm: bool = False


@dataclass(frozen=True)
class Subscription:
    """A destination following an author, with its inclusion flags."""

    destination: Destination
    flags: "SubscriptionFlag"


@dataclass(frozen=True)
class DispatchTarget:
    """A subscription that passed the router's inclusion rules."""

    destination: Destination
    flags: "SubscriptionFlag"


class PayloadKind(Enum):
    ANNOUNCEMENT = "announcement"
    MESSAGE = "message"


@dataclass(frozen=True)
class DispatchDescriptor:
    """One delivery request handed to the dispatcher."""

    destination: Destination
    payload: Union[str, RenderedMessage]
    kind: PayloadKind


@dataclass(frozen=True)
class StreamError:
    """Error reported by the stream transport."""

    status: Optional[int]
    status_text: str
    url: Optional[str] = None


@dataclass(frozen=True)
class PageImage:
    url: Optional[str]
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class PageMetadata:
    """Images advertised by a web page through Open Graph and Twitter cards."""

    open_graph_images: Tuple[PageImage, ...] = ()
    twitter_card_images: Tuple[PageImage, ...] = ()
