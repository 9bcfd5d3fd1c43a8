"""Relevance scoring: embedding cosine similarity and weighted lexical match."""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from libs.core.models import SavedItem

SEMANTIC_FALLBACK_BASE = 0.1
LEXICAL_BASE = 0.3

# (attribute, weight) pairs added when the attribute contains the query.
LEXICAL_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("title", 0.4),
    ("keywords", 0.3),
    ("summary", 0.25),
    ("topic_auto", 0.2),
    ("description", 0.2),
    ("topic_user", 0.15),
    ("selected_text", 0.1),
)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of two vectors; 0.0 for mismatched lengths or zero norms."""
    if len(a) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=np.float32)
    vb = np.asarray(b, dtype=np.float32)
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def _contains(value: object, needle: str) -> bool:
    if not value:
        return False
    if isinstance(value, list):
        return any(needle in str(v).lower() for v in value)
    return needle in str(value).lower()


def lexical_relevance(item: SavedItem, query: str, base: float) -> float:
    needle = query.strip().lower()
    score = base
    if needle:
        for attr, weight in LEXICAL_WEIGHTS:
            if _contains(getattr(item, attr, None), needle):
                score += weight
    return min(score, 1.0)


def clamp_score(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


__all__ = [
    "SEMANTIC_FALLBACK_BASE",
    "LEXICAL_BASE",
    "LEXICAL_WEIGHTS",
    "cosine_similarity",
    "lexical_relevance",
    "clamp_score",
]
