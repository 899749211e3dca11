"""Tweet rendering pipeline (core domain).

The renderer turns one RawPost into a RenderedMessage in a fixed order:
1) Validity gate
2) Text/entity/media selection (extended form, retweet inheritance)
3) Media classification into a PostKind
4) Text rewriting (mentions, URLs with concurrent unfurling, hashtags)
5) Media payload (preview, video variant, image files)

Rendering never raises for a valid post: failed unfurls and unusable video
variants degrade to "no preview" or "no media".
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from core.config import RenderConfig
from core.media import COLORS, PostContent, PostKind, best_picture, select_content, select_video_variant
from core.models import PageMetadata, RawPost, RenderedMessage, UrlEntity
from core.ports import MetadataResolverPort
from core.router import is_valid
from core.text_rewrite import TextEdit, finalize_text, hashtag_edits, mention_edits

LOGGER = logging.getLogger(__name__)

STATUS_URL = "https://twitter.com/{screen_name}/status/{post_id}"
QUOTED_PREFIX = "[QUOTED] "


class TweetRenderer:
    """Builds display-ready messages from raw posts."""

    def __init__(self, resolver: MetadataResolverPort, config: Optional[RenderConfig] = None) -> None:
        self._resolver = resolver
        self._config = config or RenderConfig()

    async def render(self, post: RawPost, quoted: bool = False) -> Optional[RenderedMessage]:
        """Render ``post``; returns None when the post fails the validity gate."""

        if not is_valid(post):
            return None

        author = post.author
        content = select_content(post)
        post_id = post.post_id
        target_screen_name = author.screen_name
        retweeted = post.retweeted_status
        if retweeted is not None:
            post_id = retweeted.post_id or post_id
            if retweeted.author is not None and retweeted.author.screen_name:
                target_screen_name = retweeted.author.screen_name

        text, should_ping, preview = await self._rewrite_text(content)

        image_url: Optional[str] = None
        files: Tuple[str, ...] = ()
        if content.kind is PostKind.TEXT:
            image_url = preview
        elif content.kind is PostKind.VIDEO:
            text, image_url, files = self._video_payload(post, content, text)
        else:
            media_urls = tuple(item.media_url for item in content.media if item.media_url)
            if len(media_urls) == 1:
                image_url = media_urls[0]
            else:
                files = media_urls

        return RenderedMessage(
            author_name=f"{QUOTED_PREFIX if quoted else ''}{author.name} (@{author.screen_name})",
            author_url=STATUS_URL.format(screen_name=target_screen_name, post_id=post_id),
            avatar_url=author.avatar_url,
            color=self._color(author.accent_color, content.kind),
            description=text,
            image_url=image_url,
            files=files,
            should_ping=should_ping,
            preview_url=preview,
        )

    async def _rewrite_text(self, content: PostContent) -> Tuple[str, bool, Optional[str]]:
        entities = content.entities
        if entities is None:
            return finalize_text(content.text, []), False, None

        edits: List[TextEdit] = mention_edits(entities.user_mentions)

        urls = [
            url for url in entities.urls if url.expanded_url and url.indices is not None and len(url.indices) == 2
        ]
        # All unfurls for a post run concurrently; results come back in entity order.
        resolved = await asyncio.gather(*(self._resolve(url) for url in urls)) if urls else []
        preview: Optional[str] = None
        for url, metadata in zip(urls, resolved):
            start, end = url.indices
            edits.append(TextEdit(start, end, url.expanded_url))
            if content.kind is PostKind.TEXT and preview is None:
                preview = best_picture(metadata)

        tag_edits, should_ping = hashtag_edits(entities.hashtags, self._config.ping_hashtag)
        edits.extend(tag_edits)
        return finalize_text(content.text, edits), should_ping, preview

    async def _resolve(self, url: UrlEntity) -> Optional[PageMetadata]:
        try:
            return await self._resolver.resolve(url.expanded_url)
        except Exception:
            # A failed unfurl drops only that preview.
            LOGGER.debug("Unfurl failed for %s", url.expanded_url, exc_info=True)
            return None

    def _video_payload(
        self, post: RawPost, content: PostContent, text: str
    ) -> Tuple[str, Optional[str], Tuple[str, ...]]:
        media = content.media[0]
        video_info = media.video_info
        selected = select_video_variant(video_info, self._config.video_bitrate_ceiling)
        if selected is None:
            LOGGER.warning("Found video post %s with no valid variant: %s", post.post_id, video_info)
            return text, None, ()

        duration = video_info.duration_millis if video_info is not None else None
        is_short = duration is not None and duration < self._config.video_duration_cutoff_ms
        if is_short or selected.bitrate == 0:
            return text, None, (selected.url,)
        return f"{text}\n[Link to video]({selected.url})", media.media_url, ()

    @staticmethod
    def _color(accent_color: Optional[str], kind: PostKind) -> int:
        if accent_color:
            try:
                return int(accent_color, 16)
            except ValueError:
                LOGGER.debug("Ignoring invalid accent color %r", accent_color)
        return COLORS[kind]
