# backend/carefind/db/base.py
from typing import Any, Dict, Iterable, List, Optional, Protocol

from carefind.models import (
    AvailabilityLink,
    BranchDetail,
    BranchOffer,
    BranchServiceOffer,
    CatalogItem,
    ItemQuery,
    PackageComponent,
    Provider,
)

# collection names shared by the Mongo and in-memory stores
SERVICES = "services"
PROVIDERS = "providers"
BRANCHES = "branches"
BRANCH_SERVICES = "branch_services"
PACKAGE_COMPONENTS = "package_components"


class CatalogStore(Protocol):
    """
    Read-only access to the catalog. Implementations raise
    ``StoreUnavailable`` when the backing store fails.
    """

    mode: str

    def find_items(self, query: ItemQuery) -> List[CatalogItem]:
        """Active items matching any token on name/keywords, ANDed with filters, capped at query.limit."""
        ...

    def find_availability_links(self, item_ids: Iterable[int], available_only: bool = True) -> List[AvailabilityLink]:
        """Links for the given items, each joined with its branch."""
        ...

    def find_items_by_name_pattern(self, raw_query: str, normalized_query: str, limit: int) -> List[CatalogItem]:
        """Active, bookable items: name prefix raw OR name contains raw OR keywords contain normalized."""
        ...

    def list_providers(self) -> List[Provider]: ...

    def get_item(self, item_id: int) -> Optional[CatalogItem]: ...

    def count_available_branches(self, item_id: int) -> int: ...

    def find_package_components(self, package_id: int) -> List[PackageComponent]: ...

    def find_branches_offering(self, item_id: int) -> List[BranchOffer]:
        """Active branches where the item is available, with provider and branch price."""
        ...

    def get_branch(self, branch_id: int) -> Optional[BranchDetail]:
        """The branch with its provider; ``services`` is left empty."""
        ...

    def find_services_at_branch(self, branch_id: int) -> List[BranchServiceOffer]:
        """Active items available at the branch, each with its branch price."""
        ...

    def ping(self) -> bool: ...


def build_components(ids: List[int], tests: Dict[int, Dict[str, Any]],
                     canonical: Dict[int, Dict[str, Any]]) -> List[PackageComponent]:
    """Components in display order; the canonical test's name/price wins when present."""
    out: List[PackageComponent] = []
    for cid in ids:
        t = tests.get(cid)
        if t is None:
            continue
        c = canonical.get(t.get("canonical_service_id"))
        out.append(PackageComponent(
            id=t["id"],
            name=t["name"],
            discounted_price=t.get("discounted_price"),
            display_name=(c or {}).get("name") or t["name"],
            display_price=(c or {}).get("discounted_price") or t.get("discounted_price"),
        ))
    return out


