# backend/carefind/services/catalog.py
from __future__ import annotations
from typing import List, Optional

from carefind.core.exceptions import NotFound
from carefind.db.base import CatalogStore
from carefind.models import BranchDetail, BranchOffer, Provider, ServiceDetail
from carefind.services.text import normalize


class CatalogService:
    """Read-only lookups around a service: providers, branches, detail."""

    def __init__(self, store: CatalogStore):
        self.store = store

    def providers(self) -> List[Provider]:
        return self.store.list_providers()

    def branches_for_service(self, service_id: int, district: Optional[str] = None,
                             city: Optional[str] = None) -> List[BranchOffer]:
        # same location matching as the search geo filter
        want_district, want_city = normalize(district), normalize(city)
        return [
            b for b in self.store.find_branches_offering(service_id)
            if (not want_district or want_district in normalize(b.district))
            and (not want_city or want_city in normalize(b.city))
        ]

    def service_detail(self, service_id: int) -> ServiceDetail:
        item = self.store.get_item(service_id)
        if item is None:
            raise NotFound(f"service {service_id} not found")
        components = self.store.find_package_components(service_id) if item.service_type == "package" else []
        return ServiceDetail(
            **item.model_dump(),
            branches_available=self.store.count_available_branches(service_id),
            components=components,
        )

    def branch_detail(self, branch_id: int) -> BranchDetail:
        branch = self.store.get_branch(branch_id)
        if branch is None:
            raise NotFound(f"branch {branch_id} not found")
        return branch.model_copy(update={"services": self.store.find_services_at_branch(branch_id)})
