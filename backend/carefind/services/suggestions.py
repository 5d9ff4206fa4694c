# backend/carefind/services/suggestions.py
from __future__ import annotations
import logging
from typing import List, Optional

from carefind.core.config import Settings, settings as default_settings
from carefind.db.base import CatalogStore
from carefind.models import CatalogItem, Suggestion
from carefind.services.text import normalize

logger = logging.getLogger(__name__)


def _to_suggestion(item: CatalogItem) -> Suggestion:
    return Suggestion(
        id=item.id,
        name=item.name,
        service_type=item.service_type,
        category=item.category,
        provider_name=item.provider.brand_name if item.provider else None,
        price=item.discounted_price,
    )


def order_suggestions(items: List[CatalogItem], query_normalized: str) -> List[CatalogItem]:
    """Dedupe by display name (first wins), then prefix match, package kind, shorter name."""
    seen = set()
    unique: List[CatalogItem] = []
    for it in items:
        if it.name in seen:
            continue
        seen.add(it.name)
        unique.append(it)
    return sorted(unique, key=lambda it: (
        not normalize(it.name).startswith(query_normalized),
        it.service_type != "package",
        len(it.name),
    ))


class SuggestionService:
    def __init__(self, store: CatalogStore, settings: Settings = default_settings):
        self.store = store
        self.settings = settings

    def suggest(self, q: Optional[str]) -> List[Suggestion]:
        raw = q or ""
        if len(raw) < self.settings.SUGGEST_MIN_QUERY_LENGTH:
            return []
        query_norm = normalize(raw)
        items = self.store.find_items_by_name_pattern(raw, query_norm, self.settings.SUGGEST_FETCH_CAP)
        ordered = order_suggestions(items, query_norm)[: self.settings.SUGGEST_MAX_RESULTS]
        logger.debug("suggest q=%r fetched=%d returned=%d", raw, len(items), len(ordered))
        return [_to_suggestion(it) for it in ordered]
