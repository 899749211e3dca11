"""Post content selection and media classification (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

from core.models import Entities, MediaItem, PageImage, PageMetadata, RawPost, VideoInfo

VIDEO_TYPES = frozenset({"video", "animated_gif"})
MP4_CONTENT_TYPE = "video/mp4"


class PostKind(Enum):
    TEXT = "text"
    VIDEO = "video"
    IMAGE = "image"
    IMAGES = "images"


COLORS = {
    PostKind.TEXT: 0x69B2D6,
    PostKind.VIDEO: 0x67D67D,
    PostKind.IMAGE: 0xD667CF,
    PostKind.IMAGES: 0x53A38D,
}


@dataclass(frozen=True)
class PostContent:
    """Text, entities and media a post is rendered from."""

    text: str
    entities: Optional[Entities]
    media: Tuple[MediaItem, ...]
    kind: PostKind


def select_media(post: RawPost) -> Tuple[MediaItem, ...]:
    """Return the post's media, inheriting from the retweeted post if needed."""

    media = post.extended.media if post.extended is not None else post.media
    if not media and post.retweeted_status is not None:
        media = post.retweeted_status.media
    return tuple(media or ())


def has_media(post: RawPost) -> bool:
    return bool(select_media(post))


def classify(media: Sequence[MediaItem]) -> PostKind:
    if not media:
        return PostKind.TEXT
    if media[0].type in VIDEO_TYPES:
        return PostKind.VIDEO
    if len(media) == 1:
        return PostKind.IMAGE
    return PostKind.IMAGES


def select_content(post: RawPost) -> PostContent:
    """Prefer the extended representation when the platform sent one."""

    text = post.full_text or post.text or ""
    entities = post.entities
    if post.extended is not None:
        text = post.extended.full_text or text
        entities = post.extended.entities
    media = select_media(post)
    return PostContent(text=text, entities=entities, media=media, kind=classify(media))


def strip_query(url: str) -> str:
    """Drop a query string that belongs to the last path segment."""

    param_index = url.rfind("?")
    if param_index != -1 and param_index > url.rfind("/"):
        return url[:param_index]
    return url


@dataclass(frozen=True)
class SelectedVideo:
    url: str
    bitrate: int


def select_video_variant(video_info: Optional[VideoInfo], bitrate_ceiling: int) -> Optional[SelectedVideo]:
    """Pick the highest-bitrate MP4 variant strictly below the ceiling."""

    if video_info is None:
        return None
    best: Optional[SelectedVideo] = None
    for variant in video_info.variants:
        if variant.content_type != MP4_CONTENT_TYPE or variant.bitrate is None:
            continue
        if variant.bitrate >= bitrate_ceiling:
            continue
        if best is None or variant.bitrate > best.bitrate:
            best = SelectedVideo(url=strip_query(variant.url), bitrate=variant.bitrate)
    return best


def _is_eligible_image(image: PageImage) -> bool:
    url = image.url
    if not url or not image.width or not image.height:
        return False
    if image.width <= 0 or image.height <= 0:
        return False
    if not url.startswith("http") and not url.startswith("//"):
        return False
    dot_index = url.find(".")
    return -1 < dot_index < len(url) - 1


def best_picture(metadata: Optional[PageMetadata]) -> Optional[str]:
    """Return the first usable preview image, Twitter card images first."""

    if metadata is None:
        return None
    candidates: Iterable[PageImage] = (*metadata.twitter_card_images, *metadata.open_graph_images)
    for image in candidates:
        if _is_eligible_image(image):
            url = image.url
            return f"https:{url}" if url.startswith("//") else url
    return None
