"""Extraction sub-package: heuristic main-content extraction over a parsed DOM."""

from .main_content import ExtractionResult, ExtractOptions, extract
from .scoring import ScoreMap, score_candidates
from .title import resolve_title

__all__ = [
    "extract",
    "resolve_title",
    "score_candidates",
    "ExtractionResult",
    "ExtractOptions",
    "ScoreMap",
]
