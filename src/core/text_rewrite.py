"""Entity-based text rewriting (core domain).

Entities carry codepoint ranges into the NFC form of the original text. We
collect replacements as edits against that original text and splice them in
one left-to-right pass, shifting each range by the length change of the
edits already applied.
"""

from __future__ import annotations

from dataclasses import dataclass
import unicodedata
from typing import Iterable, List, Sequence, Tuple

from core.models import Hashtag, Mention

PROFILE_URL = "https://twitter.com/{screen_name}"
HASHTAG_URL = "https://twitter.com/hashtag/{tag}?src=hash"
SHORT_LINK_PREFIX = "https://t.co/"


@dataclass(frozen=True)
class TextEdit:
    """Replace ``[start, end)`` of the original text with ``replacement``."""

    start: int
    end: int
    replacement: str


def _valid_range(indices) -> bool:
    return indices is not None and len(indices) == 2


def mention_edits(mentions: Iterable[Mention]) -> List[TextEdit]:
    """Strip the leading reply mentions and link every other mention.

    Mentions chained from position 0 (``@a @b ...``) are removed together
    with the space that follows them. The first mention that breaks the chain
    ends the reply prefix for good.
    """

    edits: List[TextEdit] = []
    in_replies = True
    reply_index = 0
    for mention in mentions:
        if not mention.screen_name or not _valid_range(mention.indices):
            continue
        start, end = mention.indices
        if in_replies and start == reply_index:
            edits.append(TextEdit(start, end + 1, ""))
            reply_index = end + 1
            continue
        in_replies = False
        label = mention.name or mention.screen_name
        url = PROFILE_URL.format(screen_name=mention.screen_name)
        edits.append(TextEdit(start, end, f"[@{label}]({url})"))
    return edits


def hashtag_edits(hashtags: Iterable[Hashtag], ping_tag: str) -> Tuple[List[TextEdit], bool]:
    """Link hashtags to their search page.

    Returns the edits and whether the ping hashtag was present.
    """

    edits: List[TextEdit] = []
    should_ping = False
    for hashtag in hashtags:
        if not hashtag.text or not _valid_range(hashtag.indices):
            continue
        start, end = hashtag.indices
        url = HASHTAG_URL.format(tag=hashtag.text)
        edits.append(TextEdit(start, end, f"[#{hashtag.text}]({url})"))
        if ping_tag and hashtag.text.lower() == ping_tag.lower():
            should_ping = True
    return edits, should_ping


def apply_edits(text: str, edits: Sequence[TextEdit]) -> str:
    """Splice non-overlapping edits into the NFC form of ``text``.

    Python strings index by codepoint, so ranges map directly onto slices.
    """

    result = unicodedata.normalize("NFC", text)
    offset = 0
    for edit in sorted(edits, key=lambda item: item.start):
        replacement = unicodedata.normalize("NFC", edit.replacement)
        result = result[: edit.start + offset] + replacement + result[edit.end + offset :]
        offset += len(replacement) - (edit.end - edit.start)
    return result


def unescape_entities(text: str) -> str:
    """Undo the platform's minimal HTML escaping."""

    return text.replace("&amp;", "&").replace("&gt;", ">").replace("&lt;", "<")


def strip_short_link(text: str) -> str:
    """Cut the media short link the platform appends to the text."""

    index = text.find(SHORT_LINK_PREFIX)
    if index > -1:
        return text[:index]
    return text


def finalize_text(text: str, edits: Sequence[TextEdit]) -> str:
    """Apply edits, unescape, then drop the trailing short link."""

    return strip_short_link(unescape_entities(apply_edits(text, edits)))
