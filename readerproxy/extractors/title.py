"""Article title resolution.

Source chain (highest → lowest):
    <title> → og:title → twitter:title → first <h1>

Site titles usually carry the site name after a separator
("My Post | Example Blog"); the segment that matches the content's own
heading wins, otherwise the longest multi-word segment.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag

from readerproxy.dom import inner_text, normalize_space

logger = logging.getLogger(__name__)

TITLE_SEPARATORS: tuple[str, ...] = (" | ", " - ", " :: ", " – ", " — ", " » ", " / ")
_SEPARATOR_RE = re.compile("|".join(re.escape(sep) for sep in TITLE_SEPARATORS))
_WORD_RE = re.compile(r"\w+")

# A segment needs at least this many words to stand in for the whole title
MIN_SEGMENT_WORDS = 3


def _safe_str(val: object) -> str:
    if val is None:
        return ""
    if isinstance(val, list):
        return " ".join(str(v) for v in val)
    return str(val)


def _meta_content(soup: BeautifulSoup, key: str) -> str:
    for attr in ("property", "name"):
        tag = soup.find("meta", attrs={attr: key})
        if isinstance(tag, Tag):
            content = normalize_space(_safe_str(tag.get("content")))
            if content:
                return content
    return ""


def document_title(soup: BeautifulSoup) -> str:
    """Best raw title of the page, before any separator handling."""
    title_tag = soup.find("title")
    if isinstance(title_tag, Tag):
        title = normalize_space(title_tag.get_text())
        if title:
            return title
    for key in ("og:title", "twitter:title"):
        title = _meta_content(soup, key)
        if title:
            return title
    h1 = soup.find("h1")
    return inner_text(h1) if isinstance(h1, Tag) else ""


def content_heading(content: Tag | None) -> str:
    """Text of the first ``<h1>`` in *content*, else of the first ``<h2>``."""
    if content is None:
        return ""
    for name in ("h1", "h2"):
        heading = content.find(name)
        if isinstance(heading, Tag):
            text = inner_text(heading)
            if text:
                return text
    return ""


def split_title(title: str) -> list[str]:
    return [seg.strip() for seg in _SEPARATOR_RE.split(title) if seg.strip()]


def _words(text: str) -> set[str]:
    return set(_WORD_RE.findall(text.lower()))


def resolve_title(title: str, content: Tag | None = None) -> str:
    """Pick the article title out of a site-decorated *title*.

    Args:
        title:   Raw document title (see :func:`document_title`).
        content: The selected content container; its first heading is
                 used to choose between separator-delimited segments.
    """
    title = normalize_space(title)
    heading = content_heading(content)
    if not title:
        return heading

    segments = split_title(title)
    if len(segments) < 2:
        return title

    if heading:
        heading_words = _words(heading)
        best, best_overlap = "", 0
        for segment in segments:
            overlap = len(_words(segment) & heading_words)
            if overlap > best_overlap:
                best, best_overlap = segment, overlap
        if best:
            logger.debug("Title segment %r matches heading %r", best, heading)
            return best

    qualifying = [seg for seg in segments if len(seg.split()) >= MIN_SEGMENT_WORDS]
    if not qualifying:
        return title
    return max(qualifying, key=len)
