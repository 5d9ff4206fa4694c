# backend/carefind/services/search.py
"""
Service search: broad retrieval from the store, optional location narrowing,
then precise re-scoring and ranking in Python.

    retrieve -> filter_by_location -> score_all -> rank
"""
from __future__ import annotations
import logging, math
from typing import Any, List, Optional

from carefind.core.config import Settings, settings as default_settings
from carefind.db.base import CatalogStore
from carefind.models import CatalogItem, ItemQuery, ScoredItem, SearchFilters, SearchHit, SearchResponse
from carefind.services.scoring import DEFAULT_WEIGHTS, ScoreWeights, rank, score_all
from carefind.services.text import normalize, tokenize

logger = logging.getLogger(__name__)


def parse_number(name: str, raw: Any) -> Optional[float]:
    """Lenient numeric filter: a bad value is logged and treated as absent."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("ignoring malformed filter %s=%r", name, raw)
        return None
    if not math.isfinite(value):
        logger.warning("ignoring malformed filter %s=%r", name, raw)
        return None
    return value


def parse_int(name: str, raw: Any) -> Optional[int]:
    value = parse_number(name, raw)
    if value is None:
        return None
    if not value.is_integer():
        logger.warning("ignoring malformed filter %s=%r", name, raw)
        return None
    return int(value)


def build_filters(provider_id: Any = None, service_type: Optional[str] = None,
                  min_price: Any = None, max_price: Any = None) -> SearchFilters:
    return SearchFilters(
        provider_id=parse_int("provider_id", provider_id),
        service_type=(service_type or "").strip() or None,
        min_price=parse_number("min_price", min_price),
        max_price=parse_number("max_price", max_price),
    )


class CatalogSearchService:
    def __init__(self, store: CatalogStore, settings: Settings = default_settings,
                 weights: ScoreWeights = DEFAULT_WEIGHTS):
        self.store = store
        self.settings = settings
        self.weights = weights

    def retrieve(self, query: Optional[str], filters: SearchFilters) -> List[CatalogItem]:
        """High-recall candidate fetch: any token on keywords/name, filters ANDed."""
        q = ItemQuery(tokens=tokenize(query), filters=filters, limit=self.settings.SEARCH_RETRIEVAL_CAP)
        items = self.store.find_items(q)
        if len(items) >= q.limit:
            logger.info("retrieval hit cap of %d for query=%r", q.limit, query)
        return items

    def filter_by_location(self, items: List[CatalogItem], district: Optional[str] = None,
                           city: Optional[str] = None) -> List[CatalogItem]:
        """Keep items available at a branch in the district/city. Items with no links are dropped."""
        want_district = normalize(district)
        want_city = normalize(city)
        if not want_district and not want_city:
            return items
        if not items:
            return []

        links = self.store.find_availability_links([it.id for it in items], available_only=True)
        reachable = set()
        for link in links:
            if link.branch is None:
                continue
            if want_district and want_district not in normalize(link.branch.district):
                continue
            if want_city and want_city not in normalize(link.branch.city):
                continue
            reachable.add(link.service_id)
        return [it for it in items if it.id in reachable]

    def search(self, q: Optional[str] = None, district: Optional[str] = None, city: Optional[str] = None,
               filters: Optional[SearchFilters] = None, limit: Optional[int] = None) -> SearchResponse:
        filters = filters or SearchFilters()
        limit = self.settings.SEARCH_DEFAULT_LIMIT if limit is None or limit < 1 else limit
        query = (q or "").strip()
        logger.debug("search q=%r district=%r city=%r filters=%s", query, district, city, filters.model_dump())

        candidates = self.filter_by_location(self.retrieve(query, filters), district, city)

        query_norm = normalize(query)
        if query_norm:
            scored = score_all(candidates, query_norm, tokenize(query), self.weights)
        else:
            # no query: keep store order, no scoring
            scored = [ScoredItem(item=it, score=0) for it in candidates]
        ranked = rank(scored, limit, query_present=bool(query_norm),
                      min_positive=self.settings.SEARCH_MIN_POSITIVE_RESULTS)

        hits = [SearchHit(**s.item.model_dump(), score=s.score if query_norm else None) for s in ranked]
        logger.info("search q=%r candidates=%d returned=%d", query, len(candidates), len(hits))
        return SearchResponse(items=hits, total=len(hits), query=query or None)
