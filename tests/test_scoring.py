"""Tests for readerproxy.extractors.scoring."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from readerproxy.extractors.scoring import ScoreMap, node_score, score_candidates, text_score

# 250 characters, 3 commas
_LONG = ("Scoring looks at text, length and commas, and little else, " * 5).strip()[:250]


def _body(html: str):
    return BeautifulSoup(html, "lxml").body


# ---------------------------------------------------------------------------
# ScoreMap
# ---------------------------------------------------------------------------

class TestScoreMap:
    def test_identical_markup_kept_apart(self):
        body = _body("<p>same</p><p>same</p>")
        first, second = body.find_all("p")
        scores = ScoreMap()
        scores.add(first, 3)
        scores.add(second, 1)
        assert len(scores) == 2
        assert scores.get(first) == 3
        assert scores.get(second) == 1

    def test_contributions_accumulate(self):
        p = _body("<p>x</p>").find("p")
        scores = ScoreMap()
        scores.add(p, 2)
        scores.add(p, -5)
        assert scores.get(p) == -3
        scores.clamp()
        assert scores.get(p) == 0

    def test_missing_node_scores_zero(self):
        p = _body("<p>x</p>").find("p")
        assert ScoreMap().get(p) == 0
        assert p not in ScoreMap()

    def test_best_prefers_first_in_document_order(self):
        body = _body("<p>a</p><p>b</p>")
        a, b = body.find_all("p")
        scores = ScoreMap()
        scores.add(b, 5)
        scores.add(a, 5)
        assert scores.best([a, b]) == (a, 5)

    def test_best_ignores_zero(self):
        body = _body("<p>a</p>")
        scores = ScoreMap()
        scores.add(body.p, 0)
        assert scores.best([body.p]) == (None, 0.0)


# ---------------------------------------------------------------------------
# Text and node scores
# ---------------------------------------------------------------------------

class TestTextScore:
    def test_length_points(self):
        assert text_score("a" * 99) == 0
        assert text_score("a" * 100) == 1
        assert text_score("a" * 250) == 2

    def test_length_capped(self):
        assert text_score("a" * 5000) == 3

    def test_commas(self):
        assert text_score("one, two, three") == 2

    def test_cjk_and_arabic_commas(self):
        assert text_score("一，二，三") == 2
        assert text_score("واحد، اثنان") == 1


class TestNodeScore:
    def test_paragraph(self):
        p = _body(f"<p>{_LONG}</p>").find("p")
        assert node_score(p) == 2 + _LONG.count(",")

    def test_div_with_ok_class(self):
        div = _body(f'<div class="entry">{_LONG}</div>').find("div")
        assert node_score(div) == 5 + 25 + 2 + _LONG.count(",")


# ---------------------------------------------------------------------------
# score_candidates
# ---------------------------------------------------------------------------

class TestScoreCandidates:
    def test_propagation_to_parent_and_grandparent(self):
        body = _body(f'<div id="outer"><div id="inner"><p>{_LONG}</p></div></div>')
        p = body.find("p")
        inner = body.find(id="inner")
        outer = body.find(id="outer")
        scores = score_candidates(body, 25)
        expected = 2 + _LONG.count(",")
        assert scores.get(p) == expected
        assert scores.get(inner) == expected
        assert scores.get(outer) == pytest.approx(expected / 2)
        assert body not in scores

    def test_contributions_from_several_paragraphs_add_up(self):
        body = _body(f'<div id="story"><p>{_LONG}</p><p>{_LONG}</p><p>{_LONG}</p></div>')
        story = body.find(id="story")
        scores = score_candidates(body, 25)
        assert scores.get(story) == 3 * (2 + _LONG.count(","))

    def test_short_paragraphs_ignored(self):
        body = _body("<div><p>Tiny.</p><p>Also tiny.</p></div>")
        assert len(score_candidates(body, 25)) == 0

    def test_negative_scores_clamped(self):
        body = _body('<div id="box"><h2>A heading that is long enough to count</h2></div>')
        scores = score_candidates(body, 25)
        assert scores.get(body.find("h2")) == 0
        assert scores.get(body.find(id="box")) == 0

    def test_unlikely_class_penalised(self):
        body = _body(f'<div><p class="share-widget">{_LONG}</p><p>{_LONG}</p></div>')
        penalised, plain = body.find_all("p")
        scores = score_candidates(body, 25)
        assert scores.get(penalised) == 0
        assert scores.get(plain) > 0

    def test_deterministic(self):
        html = f'<div id="a"><p>{_LONG}</p></div><div id="b"><p>{_LONG}</p><p>{_LONG}</p></div>'
        first = score_candidates(_body(html), 25)
        second = score_candidates(_body(html), 25)
        assert [s for _, s in first.items()] == [s for _, s in second.items()]
