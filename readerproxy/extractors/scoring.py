"""Content scoring: one bottom-up pass that fills an explicit ScoreMap."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator

from bs4 import BeautifulSoup, Tag

from readerproxy.dom import own_text
from readerproxy.extractors.classify import class_weight, is_paragraph_like, tag_base_score

logger = logging.getLogger(__name__)

# ASCII, Arabic, small-form, Chinese full-width and other comma variants
_COMMA_RE = re.compile("[\u002C\u060C\uFE50\uFE10\uFE11\u2E41\u2E34\u2E32\uFF0C]")

MAX_LENGTH_BONUS = 3
CHARS_PER_POINT = 100


class ScoreMap:
    """Accumulated content score per node, keyed by node identity.

    BeautifulSoup tags compare and hash by markup, so two identical ``<p>``
    elements would collide in a plain dict; ``id()`` keeps them apart.  The
    map holds a reference to every node it scores, which keeps those ids
    stable for the lifetime of the pass.
    """

    def __init__(self) -> None:
        self._scores: dict[int, float] = {}
        self._nodes: dict[int, Tag] = {}

    def add(self, node: Tag, amount: float) -> None:
        key = id(node)
        self._nodes[key] = node
        self._scores[key] = self._scores.get(key, 0.0) + amount

    def get(self, node: Tag) -> float:
        return self._scores.get(id(node), 0.0)

    def __contains__(self, node: object) -> bool:
        return id(node) in self._scores

    def __len__(self) -> int:
        return len(self._scores)

    def items(self) -> Iterator[tuple[Tag, float]]:
        for key, score in self._scores.items():
            yield self._nodes[key], score

    def clamp(self) -> None:
        """Floor every accumulated score at zero."""
        for key, score in self._scores.items():
            if score < 0:
                self._scores[key] = 0.0

    def best(self, document_order: list[Tag]) -> tuple[Tag | None, float]:
        """Highest-scoring node, earliest in *document_order* on ties."""
        top: Tag | None = None
        top_score = 0.0
        for node in document_order:
            score = self._scores.get(id(node), 0.0)
            if score > top_score:
                top, top_score = node, score
        return top, top_score


def text_score(text: str) -> int:
    """+1 per 100 characters (at most +3) plus +1 per comma."""
    return min(len(text) // CHARS_PER_POINT, MAX_LENGTH_BONUS) + len(_COMMA_RE.findall(text))


def node_score(node: Tag) -> float:
    """Score *node* contributes before propagation."""
    return tag_base_score(node) + class_weight(node) + text_score(own_text(node))


def _scorable_parent(node: Tag) -> Tag | None:
    parent = node.parent
    if parent is None or isinstance(parent, BeautifulSoup):
        return None
    return parent


def score_candidates(root: Tag, min_paragraph_chars: int) -> ScoreMap:
    """Score every paragraph-like node under *root* and propagate upward.

    The node keeps its score, the parent gains the full score and the
    grandparent half of it.  Scores are clamped at zero once every node has
    contributed.
    """
    scores = ScoreMap()
    candidates = 0
    for node in root.find_all(True):
        if not is_paragraph_like(node, min_paragraph_chars):
            continue
        candidates += 1
        score = node_score(node)
        scores.add(node, score)

        parent = _scorable_parent(node)
        if parent is None:
            continue
        scores.add(parent, score)

        grandparent = _scorable_parent(parent)
        if grandparent is not None:
            scores.add(grandparent, score / 2)

    scores.clamp()
    logger.debug("Scored %d candidates, %d nodes carry a score", candidates, len(scores))
    return scores
