"""Main content extraction by DOM scoring.

Algorithm:
    1. Strip scripts, styles and unlikely candidates (class/id, role, hidden).
    2. Score paragraph-like nodes and propagate to parent and grandparent.
    3. Pick the highest-scoring node (first in document order on ties).
    4. Merge qualifying siblings of that node into a fresh container.
    5. Clean the container: embeds, link lists, <br> runs, empty nodes,
       attributes, relative links.
    6. Resolve the title against the content's heading.

The document tree is mutated in place; parse a fresh copy per call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NamedTuple

from bs4 import BeautifulSoup, Tag

from readerproxy import settings
from readerproxy.dom import ParsedDocument, inner_text, link_density
from readerproxy.extractors.classify import is_paragraph_like
from readerproxy.extractors.cleanup import clean_content, preprocess
from readerproxy.extractors.scoring import ScoreMap, score_candidates
from readerproxy.extractors.title import document_title, resolve_title

logger = logging.getLogger(__name__)

# Never wrapped whole inside the content <div>
_DOCUMENT_TAGS = frozenset({"html", "body"})


@dataclass(frozen=True)
class ExtractOptions:
    """Tunable thresholds for :func:`extract`."""

    char_threshold: int = settings.CHAR_THRESHOLD
    min_paragraph_chars: int = settings.MIN_PARAGRAPH_CHARS
    sibling_score_ratio: float = settings.SIBLING_SCORE_RATIO
    sibling_min_chars: int = settings.SIBLING_MIN_CHARS
    sibling_max_link_density: float = settings.SIBLING_MAX_LINK_DENSITY
    link_heavy_density: float = settings.LINK_HEAVY_DENSITY


class ExtractionResult(NamedTuple):
    content_html: str
    title: str
    success: bool
    text_length: int


def _document_order(root: Tag) -> list[Tag]:
    nodes = list(root.find_all(True))
    if not isinstance(root, BeautifulSoup):
        nodes.insert(0, root)
    return nodes


def _is_merge_worthy(sibling: Tag, options: ExtractOptions) -> bool:
    """Unscored siblings that still read like article text."""
    if not is_paragraph_like(sibling, options.min_paragraph_chars):
        return False
    if len(inner_text(sibling)) <= options.sibling_min_chars:
        return False
    return link_density(sibling) < options.sibling_max_link_density


def merge_siblings(
    top: Tag,
    top_score: float,
    scores: ScoreMap,
    soup: BeautifulSoup,
    options: ExtractOptions,
) -> Tag:
    """Move *top* and every qualifying sibling into a new ``<div>``."""
    container = soup.new_tag("div")
    parent = top.parent
    if parent is None or isinstance(parent, BeautifulSoup):
        container.append(top.extract())
        return container

    threshold = top_score * options.sibling_score_ratio
    # Snapshot: extract() below rewrites parent.contents
    siblings = [child for child in parent.children if isinstance(child, Tag)]
    merged = 0
    for sibling in siblings:
        if sibling is top or scores.get(sibling) >= threshold or _is_merge_worthy(sibling, options):
            container.append(sibling.extract())
            merged += 1
    logger.debug("Merged %d of %d siblings under <%s>", merged, len(siblings), parent.name)
    return container


def _fallback_container(root: Tag, soup: BeautifulSoup) -> Tag:
    container = soup.new_tag("div")
    for child in list(root.children):
        container.append(child.extract())
    return container


def extract(document: ParsedDocument, options: ExtractOptions | None = None) -> ExtractionResult:
    """Extract the main readable content of *document*.

    Returns an ExtractionResult namedtuple:
        content_html - cleaned HTML of the selected region, wrapped in a <div>
        title        - resolved article title ("" when the page has none)
        success      - False when the region holds fewer than
                       ``options.char_threshold`` visible characters
        text_length  - visible character count of the region
    """
    options = options or ExtractOptions()
    soup = document.soup

    # Read before anything is removed: og/twitter metas and h1 are fallbacks
    raw_title = document_title(soup)

    root: Tag = document.body or soup
    preprocess(root)

    scores = score_candidates(root, options.min_paragraph_chars)
    top, top_score = scores.best(_document_order(root))

    if top is None:
        logger.debug("No candidate scored above zero; using <%s>", root.name)
        container = _fallback_container(root, soup)
    elif top is root or top.name in _DOCUMENT_TAGS:
        logger.debug("Top candidate is <%s>; taking its children", top.name)
        container = _fallback_container(top, soup)
    else:
        logger.debug(
            "Top candidate <%s class=%r id=%r> score=%.1f",
            top.name, top.get("class"), top.get("id"), top_score,
        )
        container = merge_siblings(top, top_score, scores, soup, options)

    clean_content(
        container,
        soup,
        base_url=document.base_url,
        link_heavy_density=options.link_heavy_density,
    )

    title = resolve_title(raw_title, container)
    text_length = len(inner_text(container))
    success = text_length >= options.char_threshold
    logger.debug(
        "Extracted %d characters (threshold %d, success=%s) from %s",
        text_length, options.char_threshold, success, document.base_url or "<string>",
    )
    return ExtractionResult(
        content_html=str(container),
        title=title,
        success=success,
        text_length=text_length,
    )
