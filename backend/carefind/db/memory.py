# backend/carefind/db/memory.py
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from carefind.db.base import (
    BRANCH_SERVICES,
    BRANCHES,
    PACKAGE_COMPONENTS,
    PROVIDERS,
    SERVICES,
    build_components,
)
from carefind.models import (
    AvailabilityLink,
    Branch,
    BranchDetail,
    BranchOffer,
    BranchServiceOffer,
    CatalogItem,
    ItemQuery,
    PackageComponent,
    Provider,
)

logger = logging.getLogger(__name__)

Doc = Dict[str, Any]


def _ilike(value: Any, needle: str) -> bool:
    if isinstance(value, (list, tuple)):
        value = ",".join(str(v) for v in value)
    return needle.lower() in str(value or "").lower()


class MemoryCatalogStore:
    """
    In-process catalog with the same query semantics as MongoCatalogStore.
    Used when no database is configured/reachable, and in tests.
    """

    mode = "memory"

    def __init__(self, collections: Optional[Dict[str, List[Doc]]] = None):
        self._collections: Dict[str, List[Doc]] = {
            name: [dict(d) for d in (collections or {}).get(name, [])]
            for name in (SERVICES, PROVIDERS, BRANCHES, BRANCH_SERVICES, PACKAGE_COMPONENTS)
        }

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "MemoryCatalogStore":
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
        store = cls(data)
        logger.info("loaded in-memory catalog from %s (%d services)", path, len(store._collections[SERVICES]))
        return store

    def _where(self, name: str, pred: Callable[[Doc], bool], limit: int = 0) -> List[Doc]:
        out = [d for d in self._collections[name] if pred(d)]
        return out[:limit] if limit else out

    def _attach_providers(self, docs: List[Doc]) -> List[CatalogItem]:
        providers = {p["id"]: Provider(**p) for p in self._collections[PROVIDERS]}
        return [CatalogItem(**d, provider=providers.get(d.get("provider_id"))) for d in docs]

    # ---------- search ----------
    def find_items(self, query: ItemQuery) -> List[CatalogItem]:
        f = query.filters

        def pred(d: Doc) -> bool:
            if d.get("status") != "active" or d.get("deleted_at") is not None:
                return False
            if query.tokens and not any(
                _ilike(d.get("keywords"), t) or _ilike(d.get("name"), t) for t in query.tokens
            ):
                return False
            if f.provider_id is not None and d.get("provider_id") != f.provider_id:
                return False
            if f.service_type and d.get("service_type") != f.service_type:
                return False
            price = d.get("discounted_price")
            if f.min_price is not None and (price is None or price < f.min_price):
                return False
            if f.max_price is not None and (price is None or price > f.max_price):
                return False
            return True

        return self._attach_providers(self._where(SERVICES, pred, limit=query.limit))

    def find_availability_links(self, item_ids: Iterable[int], available_only: bool = True) -> List[AvailabilityLink]:
        ids = set(item_ids)
        branches = {b["id"]: Branch(**b) for b in self._collections[BRANCHES]}
        links = self._where(
            BRANCH_SERVICES,
            lambda l: l.get("service_id") in ids and (not available_only or l.get("is_available") is True),
        )
        return [AvailabilityLink(**l, branch=branches[l["branch_id"]]) for l in links if l.get("branch_id") in branches]

    def find_items_by_name_pattern(self, raw_query: str, normalized_query: str, limit: int) -> List[CatalogItem]:
        raw = raw_query.lower()

        def pred(d: Doc) -> bool:
            if d.get("status") != "active" or d.get("deleted_at") is not None or d.get("is_bookable") is not True:
                return False
            name = str(d.get("name") or "").lower()
            return name.startswith(raw) or raw in name or _ilike(d.get("keywords"), normalized_query)

        return self._attach_providers(self._where(SERVICES, pred, limit=limit))

    # ---------- catalog lookups ----------
    def list_providers(self) -> List[Provider]:
        docs = self._where(
            PROVIDERS, lambda p: p.get("partnership_status") == "active" and p.get("deleted_at") is None
        )
        return [Provider(**d) for d in sorted(docs, key=lambda p: p.get("brand_name") or "")]

    def get_item(self, item_id: int) -> Optional[CatalogItem]:
        docs = self._where(SERVICES, lambda d: d.get("id") == item_id, limit=1)
        return self._attach_providers(docs)[0] if docs else None

    def count_available_branches(self, item_id: int) -> int:
        return len(self._where(
            BRANCH_SERVICES, lambda l: l.get("service_id") == item_id and l.get("is_available") is True
        ))

    def find_package_components(self, package_id: int) -> List[PackageComponent]:
        links = sorted(
            self._where(PACKAGE_COMPONENTS, lambda c: c.get("package_service_id") == package_id),
            key=lambda c: c.get("display_order") or 0,
        )
        services = {d["id"]: d for d in self._collections[SERVICES]}
        ids = [l["component_service_id"] for l in links]
        tests = {i: services[i] for i in ids if i in services}
        return build_components(ids, tests, services)

    def find_branches_offering(self, item_id: int) -> List[BranchOffer]:
        branches = {
            b["id"]: b for b in self._collections[BRANCHES]
            if b.get("status") == "active" and b.get("deleted_at") is None
        }
        providers = {p["id"]: Provider(**p) for p in self._collections[PROVIDERS]}
        links = self._where(
            BRANCH_SERVICES, lambda l: l.get("service_id") == item_id and l.get("is_available") is True
        )
        return [
            BranchOffer(**branches[l["branch_id"]],
                        provider=providers.get(branches[l["branch_id"]].get("provider_id")),
                        service_price=l.get("branch_price"))
            for l in links
            if l.get("branch_id") in branches
        ]

    def get_branch(self, branch_id: int) -> Optional[BranchDetail]:
        docs = self._where(BRANCHES, lambda b: b.get("id") == branch_id, limit=1)
        if not docs:
            return None
        providers = {p["id"]: Provider(**p) for p in self._collections[PROVIDERS]}
        return BranchDetail(**docs[0], provider=providers.get(docs[0].get("provider_id")))

    def find_services_at_branch(self, branch_id: int) -> List[BranchServiceOffer]:
        services = {d["id"]: d for d in self._collections[SERVICES] if d.get("status") == "active"}
        links = self._where(
            BRANCH_SERVICES, lambda l: l.get("branch_id") == branch_id and l.get("is_available") is True
        )
        return [
            BranchServiceOffer(**services[l["service_id"]], branch_price=l.get("branch_price"))
            for l in links
            if l.get("service_id") in services
        ]

    def ping(self) -> bool:
        return True
