"""In-place tree cleaning used before scoring and on the selected content.

Every pass snapshots the node list before it starts removing nodes, so a
removal never shifts the iteration past a sibling.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, Tag

from readerproxy.dom import NodeKind, inner_text, link_density, node_kind
from readerproxy.extractors.classify import (
    class_weight,
    is_hidden,
    is_unlikely_candidate,
)
from readerproxy.urls import has_media_extension, is_script_url, resolve_url

logger = logging.getLogger(__name__)

# Removed outright before anything is scored
STRIP_TAGS: tuple[str, ...] = ("script", "style", "noscript", "iframe", "template")

# Interactive and embedded elements; only whitelisted media survives
EMBED_TAGS: tuple[str, ...] = (
    "form", "fieldset", "input", "button", "select", "textarea",
    "embed", "object", "audio", "video",
)
_MEDIA_TAGS: frozenset[str] = frozenset({"audio", "video", "embed", "object"})

LINK_HEAVY_TAGS: tuple[str, ...] = ("div", "section", "ul", "ol", "table", "aside", "nav")

# Elements that are meaningful without text
_CONTENT_WITHOUT_TEXT: frozenset[str] = frozenset(
    {
        "img", "picture", "source", "video", "audio", "embed", "object", "svg",
        "br", "hr", "td", "th", "tr", "col", "colgroup", "track", "math",
    },
)

KEPT_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "href", "src", "srcset", "alt", "title", "colspan", "rowspan",
        "datetime", "cite", "poster", "type", "controls", "data",
    },
)
_URL_ATTRIBUTES: tuple[str, ...] = ("href", "src", "poster", "data")

# Inline content that a paragraph built from a <br> run may absorb
PHRASING_TAGS: frozenset[str] = frozenset(
    {
        "a", "abbr", "audio", "b", "bdi", "bdo", "cite", "code", "data", "dfn",
        "em", "i", "img", "kbd", "label", "mark", "q", "s", "samp", "small",
        "span", "strong", "sub", "sup", "time", "u", "var", "video", "wbr",
    },
)


# ---------------------------------------------------------------------------
# Preprocessing (before scoring)
# ---------------------------------------------------------------------------

def strip_unwanted_tags(root: Tag) -> int:
    removed = 0
    for tag in root.find_all(STRIP_TAGS):
        if not tag.decomposed:
            tag.decompose()
            removed += 1
    return removed


def remove_unlikely_candidates(root: Tag) -> int:
    """Drop hidden and unlikely-candidate elements below *root*."""
    removed = 0
    for tag in list(root.find_all(True)):
        if tag.decomposed:
            continue
        if is_hidden(tag) or is_unlikely_candidate(tag):
            logger.debug("Removing unlikely candidate <%s class=%r id=%r>",
                         tag.name, tag.get("class"), tag.get("id"))
            tag.decompose()
            removed += 1
    return removed


def preprocess(root: Tag) -> None:
    stripped = strip_unwanted_tags(root)
    unlikely = remove_unlikely_candidates(root)
    logger.debug("Preprocessing removed %d script-like and %d unlikely nodes", stripped, unlikely)


# ---------------------------------------------------------------------------
# Cleanup (on the selected content)
# ---------------------------------------------------------------------------

def _media_sources(tag: Tag) -> list[str]:
    sources = [str(tag.get(attr) or "") for attr in ("src", "data")]
    sources.extend(str(s.get("src") or "") for s in tag.find_all("source"))
    return [s for s in sources if s]


def is_whitelisted_media(tag: Tag) -> bool:
    """Audio, video, embed or object whose source has an approved extension."""
    if tag.name not in _MEDIA_TAGS:
        return False
    return any(has_media_extension(src) for src in _media_sources(tag))


def remove_embeds(root: Tag) -> int:
    removed = 0
    for tag in list(root.find_all(EMBED_TAGS)):
        if tag.decomposed or is_whitelisted_media(tag):
            continue
        tag.decompose()
        removed += 1
    return removed


def remove_link_heavy_blocks(root: Tag, max_density: float) -> int:
    """Drop link lists and menus that survived class/id filtering."""
    removed = 0
    # Innermost first, so a link-heavy list goes before its parent is judged
    for tag in reversed(list(root.find_all(LINK_HEAVY_TAGS))):
        if tag.decomposed or class_weight(tag) > 0:
            continue
        if link_density(tag) > max_density:
            tag.decompose()
            removed += 1
    return removed


def _next_node(node: PageElement | None) -> PageElement | None:
    """First sibling from *node* onward that is not whitespace-only text."""
    while node is not None and isinstance(node, NavigableString) and not node.strip():
        node = node.next_sibling
    return node


def _is_br(node: PageElement | None) -> bool:
    return isinstance(node, Tag) and node.name == "br"


def _is_phrasing(node: PageElement) -> bool:
    if isinstance(node, Tag):
        return node.name in PHRASING_TAGS
    return node_kind(node) is NodeKind.TEXT


def collapse_br_runs(root: Tag, soup: BeautifulSoup) -> int:
    """Turn each run of two or more ``<br>`` into a paragraph boundary.

    The first ``<br>`` of the run becomes a ``<p>`` that absorbs the inline
    content following the run, up to the next run or block element.
    """
    collapsed = 0
    for br in list(root.find_all("br")):
        if br.decomposed or br.parent is None:
            continue
        replaced = False
        nxt = _next_node(br.next_sibling)
        while _is_br(nxt):
            replaced = True
            following = nxt.next_sibling
            nxt.decompose()
            nxt = _next_node(following)
        if not replaced:
            continue

        paragraph = soup.new_tag("p")
        br.replace_with(paragraph)
        nxt = paragraph.next_sibling
        while nxt is not None:
            if _is_br(nxt) and _is_br(_next_node(nxt.next_sibling)):
                break
            if not _is_phrasing(nxt) and not _is_br(nxt):
                break
            following = nxt.next_sibling
            paragraph.append(nxt.extract())
            nxt = following

        while paragraph.contents and _is_blank(paragraph.contents[-1]):
            paragraph.contents[-1].extract()
        if paragraph.parent is not None and paragraph.parent.name == "p":
            paragraph.parent.name = "div"
        collapsed += 1
    return collapsed


def _is_blank(node: PageElement) -> bool:
    if isinstance(node, Tag):
        return node.name == "br"
    return not str(node).strip()


def is_empty(tag: Tag) -> bool:
    if tag.name in _CONTENT_WITHOUT_TEXT:
        return False
    if inner_text(tag):
        return False
    return tag.find(_CONTENT_WITHOUT_TEXT - {"br", "hr"}) is None


def remove_empty_nodes(root: Tag) -> int:
    removed = 0
    # Children come after their parents in document order; walk backwards so
    # a parent is judged after its empty children are gone.
    for tag in reversed(list(root.find_all(True))):
        if tag.decomposed:
            continue
        if is_empty(tag):
            tag.decompose()
            removed += 1
    return removed


def strip_attributes(root: Tag) -> None:
    for tag in [root, *root.find_all(True)]:
        for attr in list(tag.attrs):
            if attr not in KEPT_ATTRIBUTES:
                del tag[attr]


def absolutize_links(root: Tag, base_url: str) -> None:
    """Resolve relative URLs and unwrap ``javascript:`` links."""
    for anchor in list(root.find_all("a")):
        href = str(anchor.get("href") or "")
        if href and is_script_url(href):
            anchor.unwrap()
    if not base_url:
        return
    for tag in root.find_all(True):
        for attr in _URL_ATTRIBUTES:
            value = tag.get(attr)
            if isinstance(value, str) and value:
                tag[attr] = resolve_url(base_url, value)


def clean_content(
    root: Tag,
    soup: BeautifulSoup,
    *,
    base_url: str = "",
    link_heavy_density: float = 0.5,
) -> None:
    """Run every cleanup pass over the selected content, in place."""
    remove_unlikely_candidates(root)
    remove_embeds(root)
    remove_link_heavy_blocks(root, link_heavy_density)
    collapse_br_runs(root, soup)
    remove_empty_nodes(root)
    strip_attributes(root)
    absolutize_links(root, base_url)
