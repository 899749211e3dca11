"""Twitter-to-core post mapping adapter.

This keeps the v1.1 JSON payload layout out of the core pipeline. Stream
control messages (deletes, limit notices) map to posts without an author,
which the core discards at its validity gate.
"""

from __future__ import annotations

from typing import Any, Optional

from core.models import (
    Author,
    Entities,
    ExtendedContent,
    Hashtag,
    Indices,
    MediaItem,
    Mention,
    RawPost,
    UrlEntity,
    VideoInfo,
    VideoVariant,
)


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _indices(raw: Any) -> Indices:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        return None
    try:
        return int(raw[0]), int(raw[1])
    except (TypeError, ValueError):
        return None


def build_author(payload: Any) -> Optional[Author]:
    if not isinstance(payload, dict):
        return None
    user_id = payload.get("id_str") or _as_str(payload.get("id"))
    if not user_id:
        return None
    return Author(
        user_id=user_id,
        name=payload.get("name") or payload.get("screen_name") or "",
        screen_name=payload.get("screen_name") or "",
        avatar_url=payload.get("profile_image_url_https"),
        accent_color=payload.get("profile_link_color") or None,
    )


def build_entities(payload: Any) -> Optional[Entities]:
    if not isinstance(payload, dict):
        return None
    mentions = tuple(
        Mention(
            screen_name=item.get("screen_name") or "",
            name=item.get("name"),
            indices=_indices(item.get("indices")),
        )
        for item in payload.get("user_mentions") or []
    )
    urls = tuple(
        UrlEntity(
            url=item.get("url") or "",
            expanded_url=item.get("expanded_url"),
            indices=_indices(item.get("indices")),
        )
        for item in payload.get("urls") or []
    )
    hashtags = tuple(
        Hashtag(text=item.get("text") or "", indices=_indices(item.get("indices")))
        for item in payload.get("hashtags") or []
    )
    return Entities(user_mentions=mentions, urls=urls, hashtags=hashtags)


def _build_video_info(payload: Any) -> Optional[VideoInfo]:
    if not isinstance(payload, dict):
        return None
    variants = tuple(
        VideoVariant(
            content_type=item.get("content_type") or "",
            url=item.get("url") or "",
            bitrate=item.get("bitrate"),
        )
        for item in payload.get("variants") or []
    )
    return VideoInfo(duration_millis=payload.get("duration_millis"), variants=variants)


def build_media(extended_entities: Any) -> tuple[MediaItem, ...]:
    if not isinstance(extended_entities, dict):
        return ()
    return tuple(
        MediaItem(
            type=item.get("type") or "photo",
            media_url=item.get("media_url_https"),
            video_info=_build_video_info(item.get("video_info")),
        )
        for item in extended_entities.get("media") or []
    )


def _build_extended(payload: Any) -> Optional[ExtendedContent]:
    if not isinstance(payload, dict):
        return None
    return ExtendedContent(
        full_text=payload.get("full_text") or payload.get("text"),
        entities=build_entities(payload.get("entities")),
        media=build_media(payload.get("extended_entities")),
    )


def build_post(payload: Any) -> Optional[RawPost]:
    """Build a core RawPost from a decoded stream payload.

    Returns None for anything that is not a JSON object.
    """

    if not isinstance(payload, dict):
        return None

    retweeted = payload.get("retweeted_status")
    quoted = payload.get("quoted_status")
    return RawPost(
        post_id=payload.get("id_str") or _as_str(payload.get("id")) or "",
        author=build_author(payload.get("user")),
        text=payload.get("text"),
        full_text=payload.get("full_text"),
        entities=build_entities(payload.get("entities")),
        media=build_media(payload.get("extended_entities")),
        extended=_build_extended(payload.get("extended_tweet")),
        retweeted_status=build_post(retweeted) if retweeted else None,
        quoted_status=build_post(quoted) if quoted else None,
        in_reply_to_user_id=payload.get("in_reply_to_user_id_str") or _as_str(payload.get("in_reply_to_user_id")),
        is_quote_status=bool(payload.get("is_quote_status")),
    )
