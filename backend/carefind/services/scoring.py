# backend/carefind/services/scoring.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence

from carefind.models import CatalogItem, ScoredItem
from carefind.services.text import normalize


@dataclass(frozen=True)
class ScoreWeights:
    """Point table for relevance scoring. Override per instance for tuning."""
    name_exact: int = 1000
    name_prefix: int = 500
    name_contains: int = 300
    name_token: int = 50
    name_all_tokens: int = 100
    keyword_token: int = 20
    description_token: int = 10
    package_boost: int = 25
    tiered_pricing_boost: int = 10


DEFAULT_WEIGHTS = ScoreWeights()


def _has_tiers(value) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, dict, str, tuple)):
        return len(value) > 0
    return bool(value)


def score(item: CatalogItem, query_normalized: str, query_tokens: Sequence[str],
          weights: ScoreWeights = DEFAULT_WEIGHTS) -> int:
    """Additive relevance score of one item; only name/keywords/description are read."""
    name = normalize(item.name)
    keywords = (item.keywords or "").lower()
    description = normalize(f"{item.short_description} {item.description}")
    w = weights
    total = 0

    if query_normalized:
        if name == query_normalized:
            total += w.name_exact
        elif name.startswith(query_normalized):
            total += w.name_prefix
        elif query_normalized in name:
            total += w.name_contains

    in_name = sum(1 for t in query_tokens if t in name)
    total += in_name * w.name_token
    if len(query_tokens) > 1 and in_name == len(query_tokens):
        total += w.name_all_tokens

    total += sum(w.keyword_token for t in query_tokens if t in keywords)
    total += sum(w.description_token for t in query_tokens if t in description)

    if item.service_type == "package":
        total += w.package_boost
    if _has_tiers(item.tiered_pricing):
        total += w.tiered_pricing_boost
    return total


def score_all(items: Sequence[CatalogItem], query_normalized: str, query_tokens: Sequence[str],
              weights: ScoreWeights = DEFAULT_WEIGHTS) -> List[ScoredItem]:
    return [ScoredItem(item=it, score=score(it, query_normalized, query_tokens, weights)) for it in items]


def rank(scored: Sequence[ScoredItem], limit: int, query_present: bool = True,
         min_positive: int = 10) -> List[ScoredItem]:
    """
    Stable sort by score (desc). With a query, zero-score items are dropped
    once at least `min_positive` items score above zero.
    """
    ordered = sorted(scored, key=lambda s: s.score, reverse=True)
    if query_present:
        positive = [s for s in ordered if s.score > 0]
        if len(positive) >= min_positive:
            ordered = positive
    return ordered[:max(limit, 0)]
