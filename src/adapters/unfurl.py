"""Link metadata adapter.

Fetches a page and collects the images it advertises through Open Graph
(``og:image*``) and Twitter card (``twitter:image*``) meta tags. Every
failure maps to None so the renderer can treat it as "no preview".
"""

from __future__ import annotations

import logging
from html.parser import HTMLParser
from typing import Optional

import httpx

from core.models import PageImage, PageMetadata

LOGGER = logging.getLogger(__name__)

_OG_URL_KEYS = {"og:image", "og:image:url", "og:image:secure_url"}
_CARD_URL_KEYS = {"twitter:image", "twitter:image:src"}


def _parse_dimension(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(float(value.strip()))
    except ValueError:
        return None


class MetaImageParser(HTMLParser):
    """Collect image meta tags in document order."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.open_graph: list[dict[str, Optional[str]]] = []
        self.twitter_card: list[dict[str, Optional[str]]] = []

    def handle_starttag(self, tag, attrs):
        if tag != "meta":
            return
        values = dict(attrs)
        key = (values.get("property") or values.get("name") or "").strip().lower()
        content = values.get("content")
        if not key or content is None:
            return
        if key.startswith("og:image"):
            self._collect(self.open_graph, key[len("og:image"):], key in _OG_URL_KEYS, content)
        elif key.startswith("twitter:image"):
            self._collect(self.twitter_card, key[len("twitter:image"):], key in _CARD_URL_KEYS, content)

    @staticmethod
    def _collect(images: list, suffix: str, is_url: bool, content: str) -> None:
        # og:image starts a new image; the :url/:secure_url aliases replace the
        # current image's url once instead of adding a duplicate.
        if is_url:
            if suffix in (":url", ":secure_url") and images and "alias" not in images[-1]:
                images[-1]["url"] = content
                images[-1]["alias"] = suffix
                return
            images.append({"url": content})
            return
        if not images:
            return
        if suffix == ":width":
            images[-1]["width"] = content
        elif suffix == ":height":
            images[-1]["height"] = content

    def metadata(self) -> PageMetadata:
        return PageMetadata(
            open_graph_images=tuple(self._to_image(item) for item in self.open_graph),
            twitter_card_images=tuple(self._to_image(item) for item in self.twitter_card),
        )

    @staticmethod
    def _to_image(item: dict[str, Optional[str]]) -> PageImage:
        return PageImage(
            url=item.get("url"),
            width=_parse_dimension(item.get("width")),
            height=_parse_dimension(item.get("height")),
        )


def parse_page_metadata(html_content: str) -> PageMetadata:
    parser = MetaImageParser()
    parser.feed(html_content)
    parser.close()
    return parser.metadata()


class PageMetadataResolver:
    """MetadataResolverPort implementation backed by httpx."""

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "tweetrelay/1.0",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._client = client

    async def resolve(self, url: str) -> Optional[PageMetadata]:
        try:
            if self._client is not None:
                response = await self._fetch(self._client, url)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._fetch(client, url)
        except httpx.HTTPError as exc:
            LOGGER.debug("Unfurl request failed for %s: %s", url, exc)
            return None

        if response.status_code != 200:
            LOGGER.debug("Unfurl got HTTP %s for %s", response.status_code, url)
            return None
        content_type = response.headers.get("content-type", "")
        if "html" not in content_type.lower():
            return None
        return parse_page_metadata(response.text)

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        return await client.get(url, headers={"User-Agent": self._user_agent}, follow_redirects=True)
