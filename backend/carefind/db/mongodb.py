# backend/carefind/db/mongodb.py
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import certifi
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from carefind.core.config import Settings
from carefind.core.exceptions import StoreUnavailable
from carefind.db.base import (
    BRANCH_SERVICES,
    BRANCHES,
    PACKAGE_COMPONENTS,
    PROVIDERS,
    SERVICES,
    CatalogStore,
    build_components,
)
from carefind.db.memory import MemoryCatalogStore
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

NO_ID = {"_id": 0}


def _icontains(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


def _istarts(text: str) -> Dict[str, str]:
    return {"$regex": "^" + re.escape(text), "$options": "i"}


class MongoCatalogStore:
    """CatalogStore over a PyMongo database. Every driver error becomes StoreUnavailable."""

    mode = "mongo"

    def __init__(self, db: Database):
        self._db = db

    def _find(self, collection: str, flt: Dict[str, Any], limit: int = 0,
              sort: Optional[List] = None) -> List[Dict[str, Any]]:
        try:
            cursor = self._db[collection].find(flt, NO_ID)
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)
        except PyMongoError as e:
            logger.error("store query on %s failed: %r", collection, e)
            raise StoreUnavailable.from_error(collection, e) from e

    def _attach_providers(self, docs: List[Dict[str, Any]]) -> List[CatalogItem]:
        ids = sorted({d["provider_id"] for d in docs if d.get("provider_id") is not None})
        providers = {}
        if ids:
            for p in self._find(PROVIDERS, {"id": {"$in": ids}}):
                providers[p["id"]] = Provider(**p)
        return [CatalogItem(**d, provider=providers.get(d.get("provider_id"))) for d in docs]

    # ---------- search ----------
    def find_items(self, query: ItemQuery) -> List[CatalogItem]:
        flt: Dict[str, Any] = {"status": "active", "deleted_at": None}
        if query.tokens:
            flt["$or"] = [
                {field: _icontains(tok)}
                for tok in query.tokens
                for field in ("keywords", "name")
            ]
        f = query.filters
        if f.provider_id is not None:
            flt["provider_id"] = f.provider_id
        if f.service_type:
            flt["service_type"] = f.service_type
        price: Dict[str, float] = {}
        if f.min_price is not None:
            price["$gte"] = f.min_price
        if f.max_price is not None:
            price["$lte"] = f.max_price
        if price:
            flt["discounted_price"] = price
        return self._attach_providers(self._find(SERVICES, flt, limit=query.limit))

    def find_availability_links(self, item_ids: Iterable[int], available_only: bool = True) -> List[AvailabilityLink]:
        ids = list(item_ids)
        if not ids:
            return []
        flt: Dict[str, Any] = {"service_id": {"$in": ids}}
        if available_only:
            flt["is_available"] = True
        links = self._find(BRANCH_SERVICES, flt)
        branch_ids = sorted({l["branch_id"] for l in links})
        branches = {}
        if branch_ids:
            branches = {b["id"]: Branch(**b) for b in self._find(BRANCHES, {"id": {"$in": branch_ids}})}
        # inner join: a link whose branch is gone is dropped
        return [
            AvailabilityLink(**l, branch=branches[l["branch_id"]])
            for l in links
            if l["branch_id"] in branches
        ]

    def find_items_by_name_pattern(self, raw_query: str, normalized_query: str, limit: int) -> List[CatalogItem]:
        flt = {
            "status": "active",
            "deleted_at": None,
            "is_bookable": True,
            "$or": [
                {"name": _istarts(raw_query)},
                {"name": _icontains(raw_query)},
                {"keywords": _icontains(normalized_query)},
            ],
        }
        return self._attach_providers(self._find(SERVICES, flt, limit=limit))

    # ---------- catalog lookups ----------
    def list_providers(self) -> List[Provider]:
        docs = self._find(PROVIDERS, {"partnership_status": "active", "deleted_at": None},
                          sort=[("brand_name", 1)])
        return [Provider(**d) for d in docs]

    def get_item(self, item_id: int) -> Optional[CatalogItem]:
        docs = self._find(SERVICES, {"id": item_id}, limit=1)
        return self._attach_providers(docs)[0] if docs else None

    def count_available_branches(self, item_id: int) -> int:
        try:
            return self._db[BRANCH_SERVICES].count_documents({"service_id": item_id, "is_available": True})
        except PyMongoError as e:
            logger.error("branch count for service %s failed: %r", item_id, e)
            raise StoreUnavailable.from_error(BRANCH_SERVICES, e) from e

    def find_package_components(self, package_id: int) -> List[PackageComponent]:
        links = self._find(PACKAGE_COMPONENTS, {"package_service_id": package_id},
                           sort=[("display_order", 1)])
        if not links:
            return []
        ids = [l["component_service_id"] for l in links]
        tests = {d["id"]: d for d in self._find(SERVICES, {"id": {"$in": ids}})}
        canonical_ids = sorted({t["canonical_service_id"] for t in tests.values() if t.get("canonical_service_id")})
        canonical = {}
        if canonical_ids:
            canonical = {d["id"]: d for d in self._find(SERVICES, {"id": {"$in": canonical_ids}})}
        return build_components(ids, tests, canonical)

    def find_branches_offering(self, item_id: int) -> List[BranchOffer]:
        links = self._find(BRANCH_SERVICES, {"service_id": item_id, "is_available": True})
        branch_ids = sorted({l["branch_id"] for l in links})
        if not branch_ids:
            return []
        branches = {
            b["id"]: b
            for b in self._find(BRANCHES, {"id": {"$in": branch_ids}, "status": "active", "deleted_at": None})
        }
        provider_ids = sorted({b["provider_id"] for b in branches.values() if b.get("provider_id") is not None})
        providers = {}
        if provider_ids:
            providers = {p["id"]: Provider(**p) for p in self._find(PROVIDERS, {"id": {"$in": provider_ids}})}
        return [
            BranchOffer(**branches[l["branch_id"]],
                        provider=providers.get(branches[l["branch_id"]].get("provider_id")),
                        service_price=l.get("branch_price"))
            for l in links
            if l["branch_id"] in branches
        ]

    def get_branch(self, branch_id: int) -> Optional[BranchDetail]:
        docs = self._find(BRANCHES, {"id": branch_id}, limit=1)
        if not docs:
            return None
        branch = docs[0]
        provider = None
        if branch.get("provider_id") is not None:
            found = self._find(PROVIDERS, {"id": branch["provider_id"]}, limit=1)
            provider = Provider(**found[0]) if found else None
        return BranchDetail(**branch, provider=provider)

    def find_services_at_branch(self, branch_id: int) -> List[BranchServiceOffer]:
        links = self._find(BRANCH_SERVICES, {"branch_id": branch_id, "is_available": True})
        ids = sorted({l["service_id"] for l in links})
        if not ids:
            return []
        services = {d["id"]: d for d in self._find(SERVICES, {"id": {"$in": ids}, "status": "active"})}
        return [
            BranchServiceOffer(**services[l["service_id"]], branch_price=l.get("branch_price"))
            for l in links
            if l["service_id"] in services
        ]

    def ping(self) -> bool:
        try:
            self._db.command("ping")
            return True
        except PyMongoError:
            return False


# --- try real Mongo; fall back quickly ---
def connect_store(settings: Settings) -> CatalogStore:
    """
    Build the catalog store once at startup. An empty or unreachable
    MONGO_URI falls back to the in-memory store (seeded from CATALOG_SEED_PATH).
    """
    if settings.MONGO_URI.strip():
        kwargs: Dict[str, Any] = {
            "serverSelectionTimeoutMS": settings.MONGO_TIMEOUT_MS,
            "connectTimeoutMS": settings.MONGO_TIMEOUT_MS,
        }
        if settings.MONGO_URI.startswith("mongodb+srv://"):
            kwargs["tlsCAFile"] = certifi.where()
        try:
            client = MongoClient(settings.MONGO_URI, **kwargs)
            client.admin.command("ping")
            logger.info("connected to mongo database %s", settings.MONGO_DB)
            return MongoCatalogStore(client[settings.MONGO_DB])
        except PyMongoError as e:
            logger.warning("mongo unavailable (%s); using in-memory catalog", e.__class__.__name__)
    if settings.CATALOG_SEED_PATH:
        return MemoryCatalogStore.from_json(settings.CATALOG_SEED_PATH)
    return MemoryCatalogStore()
