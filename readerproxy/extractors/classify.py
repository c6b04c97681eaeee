"""Tag and class/id classification for content scoring.

All functions are pure: they read a node and return a verdict or a weight.
The keyword tables are the only place the extractor matches class/id text.
"""

from __future__ import annotations

import re

from bs4 import Tag

from readerproxy.dom import class_and_id, has_ancestor, own_text

# ---------------------------------------------------------------------------
# Keyword sets
# ---------------------------------------------------------------------------

# Class/id substrings statistically associated with non-content regions
UNLIKELY_KEYWORDS: tuple[str, ...] = (
    "comment",
    "footer",
    "header",
    "menu",
    "nav",
    "related",
    "share",
    "sidebar",
    "sponsor",
    "popup",
    "pagination",
    "banner",
    "advert",
    "social",
    "disqus",
    "extra",
    "remark",
    "replies",
    "shoutbox",
    "skyscraper",
    "cookie",
    "subscribe",
    "newsletter",
)

# Too short to match as substrings ("ad" is inside "header", "read", ...);
# these only match as a whole class/id token.
UNLIKELY_TOKENS: tuple[str, ...] = ("ad", "ads")

# Class/id substrings that mark a likely content region; an "ok" match always
# overrides an "unlikely" match.
OK_KEYWORDS: tuple[str, ...] = (
    "article",
    "body",
    "content",
    "entry",
    "main",
    "page",
    "post",
    "text",
    "blog",
    "story",
    "column",
    "hentry",
)

UNLIKELY_RE = re.compile(
    "|".join(
        [re.escape(k) for k in UNLIKELY_KEYWORDS]
        + [rf"(?<![a-z0-9]){re.escape(t)}(?![a-z0-9])" for t in UNLIKELY_TOKENS],
    ),
)
OK_RE = re.compile("|".join(re.escape(k) for k in OK_KEYWORDS))

UNLIKELY_ROLES: frozenset[str] = frozenset(
    {"menu", "menubar", "complementary", "navigation", "alert", "alertdialog", "dialog"},
)

_HIDDEN_STYLE_RE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)

# ---------------------------------------------------------------------------
# Tag tables
# ---------------------------------------------------------------------------

# Scored whenever they carry enough text
PARAGRAPH_TAGS: frozenset[str] = frozenset({"p", "td", "pre"})

# Scored only when they hold substantial text of their own
CONTAINER_TAGS: frozenset[str] = frozenset(
    {
        "div", "section", "article", "main", "blockquote", "li", "dd", "dt",
        "form", "address", "th", "h1", "h2", "h3", "h4", "h5", "h6",
        "figcaption", "details",
    },
)

TAG_BASE_SCORES: dict[str, int] = {
    "div": 5,
    "pre": 3,
    "blockquote": 3,
    "td": 3,
    "address": -3,
    "ol": -3,
    "ul": -3,
    "dl": -3,
    "dd": -3,
    "dt": -3,
    "li": -3,
    "form": -3,
    "h1": -5,
    "h2": -5,
    "h3": -5,
    "h4": -5,
    "h5": -5,
    "h6": -5,
    "th": -5,
}

# Never removed by the unlikely-candidate rule
_PROTECTED_TAGS: frozenset[str] = frozenset({"html", "body", "a"})
_PROTECTED_ANCESTORS: frozenset[str] = frozenset({"table", "code"})

# Page-level boilerplate by element name alone; an "ok" class/id still wins
UNLIKELY_TAGS: frozenset[str] = frozenset({"nav", "footer", "aside", "header"})
# An article's own <header>/<footer> holds its heading and byline
_ARTICLE_TAGS: frozenset[str] = frozenset({"article", "main"})

CLASS_WEIGHT = 25


def matches_unlikely(text: str) -> bool:
    return bool(text) and UNLIKELY_RE.search(text) is not None


def matches_ok(text: str) -> bool:
    return bool(text) and OK_RE.search(text) is not None


def is_unlikely_candidate(tag: Tag) -> bool:
    """Return True if *tag* should be dropped as boilerplate before scoring."""
    if tag.name in _PROTECTED_TAGS:
        return False
    role = str(tag.get("role") or "").strip().lower()
    if role in UNLIKELY_ROLES:
        return True
    match_string = class_and_id(tag)
    if matches_ok(match_string):
        return False
    if tag.name in UNLIKELY_TAGS:
        if tag.name in ("header", "footer") and has_ancestor(tag, _ARTICLE_TAGS):
            return False
        return True
    if not matches_unlikely(match_string):
        return False
    return not has_ancestor(tag, _PROTECTED_ANCESTORS)


def is_hidden(tag: Tag) -> bool:
    if tag.name in ("html", "body"):
        return False
    if tag.has_attr("hidden"):
        return True
    if str(tag.get("aria-hidden") or "").lower() == "true":
        return True
    return bool(_HIDDEN_STYLE_RE.search(str(tag.get("style") or "")))


def tag_base_score(tag: Tag) -> int:
    return TAG_BASE_SCORES.get(tag.name, 0)


def class_weight(tag: Tag) -> int:
    """+25 for an ok class/id, else -25 for an unlikely one, else 0."""
    match_string = class_and_id(tag)
    if matches_ok(match_string):
        return CLASS_WEIGHT
    if matches_unlikely(match_string):
        return -CLASS_WEIGHT
    return 0


def is_paragraph_like(tag: Tag, min_chars: int) -> bool:
    """Paragraphs, table cells and preformatted blocks, plus block containers
    carrying at least *min_chars* characters of their own text.
    """
    if tag.name not in PARAGRAPH_TAGS and tag.name not in CONTAINER_TAGS:
        return False
    return len(own_text(tag)) >= min_chars
