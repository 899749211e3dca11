"""Shared message formatting helpers.

Keeping formatting here prevents drift between dispatchers and keeps relayed
posts consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
import re

from core.models import RenderedMessage

_MD_LINK = re.compile(r"\[([^\]\n]+)\]\((https?://[^)\s]+)\)")


def _escape_md(value: str) -> str:
    for ch in r"*[`_":
        value = value.replace(ch, f"\\{ch}")
    return value


def _format_markdown(message: RenderedMessage) -> str:
    """Create the Markdown body used by the Telethon client dispatcher.

    The description already contains Markdown links produced by the renderer,
    so only the author line is escaped.
    """

    lines = [
        f"**{_escape_md(message.author_name)}**",
        "",
        message.description,
        "",
        f"[Open post]({message.author_url})",
    ]
    return "\n".join(lines)


def markdown_links_to_html(text: str) -> str:
    """Escape ``text`` for Telegram HTML, turning ``[label](url)`` into anchors."""

    # Links are matched after escaping, so only quotes still need care in href.
    escaped = html.escape(text, quote=False)
    return _MD_LINK.sub(
        lambda match: f'<a href="{match.group(2).replace(chr(34), "&quot;")}">{match.group(1)}</a>',
        escaped,
    )


def _format_html(message: RenderedMessage) -> str:
    """Create the HTML body used by the Bot API dispatcher."""

    safe_link = html.escape(message.author_url)
    parts = [
        f"<b>{html.escape(message.author_name)}</b>",
        "",
        markdown_links_to_html(message.description),
        "",
        f'<a href="{safe_link}">Open post</a>',
    ]
    return "\n".join(parts)


def media_urls(message: RenderedMessage) -> list[str]:
    """Embedded image first, then standalone files."""

    urls = [message.image_url] if message.image_url else []
    urls.extend(message.files)
    return urls


def format_message(message: RenderedMessage, mode: str) -> str:
    """Return the message formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(message)
    if mode == "html":
        return _format_html(message)
    raise ValueError(f"Unsupported message format: {mode}")
