"""HTML tree construction and read-only node helpers.

The tree is a BeautifulSoup document built with the lxml HTML parser, which
inserts missing ``html``/``head``/``body`` elements and recovers from unclosed
tags.  Everything here is pure: nothing rewrites links or mutates the tree.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, UnicodeDammit
from bs4.element import CData, NavigableString, PageElement, PreformattedString, Tag

from readerproxy.errors import ParseFailureError

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")

# Elements that start a new block; text inside them is not "own" text of an
# enclosing container.
BLOCK_TAGS: frozenset[str] = frozenset(
    {
        "address", "article", "aside", "blockquote", "dd", "details", "dialog",
        "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
        "h1", "h2", "h3", "h4", "h5", "h6", "header", "hgroup", "hr", "li",
        "main", "nav", "ol", "p", "pre", "section", "table", "tbody", "td",
        "tfoot", "th", "thead", "tr", "ul",
    },
)


class NodeKind(enum.Enum):
    DOCUMENT = "document"
    ELEMENT = "element"
    TEXT = "text"
    COMMENT = "comment"


def node_kind(node: PageElement) -> NodeKind:
    """Classify *node*.  Doctypes, declarations and processing instructions
    count as comments: markup that never renders as text.
    """
    if isinstance(node, BeautifulSoup):
        return NodeKind.DOCUMENT
    if isinstance(node, Tag):
        return NodeKind.ELEMENT
    if isinstance(node, PreformattedString) and not isinstance(node, CData):
        return NodeKind.COMMENT
    return NodeKind.TEXT


@dataclass
class ParsedDocument:
    """A parsed page plus the URL its relative links resolve against."""

    soup: BeautifulSoup
    base_url: str = ""

    @property
    def body(self) -> Tag | None:
        body = self.soup.find("body")
        return body if isinstance(body, Tag) else None

    @property
    def title_text(self) -> str:
        title = self.soup.find("title")
        return normalize_space(title.get_text()) if isinstance(title, Tag) else ""


def parse_html(html: str | bytes, base_url: str = "") -> ParsedDocument:
    """Parse *html* into a :class:`ParsedDocument`.

    Raises:
        ParseFailureError: when *html* is empty or bytes that cannot be
            decoded as text.
    """
    if isinstance(html, bytes):
        dammit = UnicodeDammit(html, is_html=True)
        if dammit.unicode_markup is None:
            raise ParseFailureError("Document bytes could not be decoded as text", url=base_url)
        html = dammit.unicode_markup

    if not html or not html.strip():
        raise ParseFailureError("Document is empty", url=base_url)

    try:
        soup = BeautifulSoup(html, "lxml")
    except Exception as exc:
        raise ParseFailureError(f"HTML parsing failed: {exc}", url=base_url) from exc

    if soup.find(True) is None:
        raise ParseFailureError("Document contains no elements", url=base_url)

    logger.debug("Parsed %d characters from %s", len(html), base_url or "<string>")
    return ParsedDocument(soup=soup, base_url=base_url)


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

def normalize_space(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def inner_text(tag: Tag) -> str:
    """Whitespace-normalised visible text of *tag* and all its descendants."""
    return normalize_space(
        "".join(
            str(s) for s in tag.descendants
            if isinstance(s, NavigableString) and node_kind(s) is NodeKind.TEXT
        ),
    )


def own_text(tag: Tag) -> str:
    """Text of *tag* that is not inside a nested block element.

    For a ``<p>`` this is its full text; for a ``<div>`` mixing loose text and
    child paragraphs it is only the loose text.
    """
    parts: list[str] = []

    def walk(node: Tag) -> None:
        for child in node.children:
            if isinstance(child, Tag):
                if child.name not in BLOCK_TAGS:
                    walk(child)
            elif node_kind(child) is NodeKind.TEXT:
                parts.append(str(child))

    walk(tag)
    return normalize_space("".join(parts))


def link_density(tag: Tag) -> float:
    """Share of *tag*'s text that sits inside ``<a>`` elements (0.0-1.0)."""
    text_length = len(inner_text(tag))
    if not text_length:
        return 0.0
    link_length = sum(len(inner_text(a)) for a in tag.find_all("a"))
    return min(link_length / text_length, 1.0)


def class_and_id(tag: Tag) -> str:
    """Lowercased ``class`` and ``id`` values joined by spaces."""
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return " ".join([*classes, str(tag.get("id") or "")]).strip().lower()


def has_ancestor(tag: Tag, names: frozenset[str] | set[str]) -> bool:
    return any(parent.name in names for parent in tag.parents)
