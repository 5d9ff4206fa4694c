from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Provider(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    brand_name: str
    logo_url: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class Branch(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    provider_id: Optional[int] = None
    name: str = ""
    address: str = ""
    district: str = ""
    city: str = ""
    status: str = "active"


class CatalogItem(BaseModel):
    """A bookable service or package as stored in the ``services`` collection."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    keywords: str = ""
    short_description: str = ""
    description: str = ""
    listed_price: Optional[float] = None
    discounted_price: Optional[float] = None
    service_type: str = "atomic"
    category: Optional[str] = None
    is_bookable: bool = True
    tiered_pricing: Optional[Any] = None
    provider_id: Optional[int] = None
    canonical_service_id: Optional[int] = None
    status: str = "active"
    provider: Optional[Provider] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def _join_keywords(cls, value):
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ",".join(str(v) for v in value)
        return value

    @field_validator("short_description", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class AvailabilityLink(BaseModel):
    model_config = ConfigDict(extra="ignore")

    service_id: int
    branch_id: int
    is_available: bool = True
    branch_price: Optional[float] = None
    branch: Optional[Branch] = None


class ScoredItem(BaseModel):
    item: CatalogItem
    score: int = 0


class SearchFilters(BaseModel):
    provider_id: Optional[int] = None
    service_type: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class ItemQuery(BaseModel):
    """Predicate handed to the store for candidate retrieval."""

    tokens: List[str] = Field(default_factory=list)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    limit: int = 500


class SearchHit(CatalogItem):
    score: Optional[int] = None


class SearchResponse(BaseModel):
    items: List[SearchHit]
    total: int
    query: Optional[str] = None


class Suggestion(BaseModel):
    id: int
    name: str
    service_type: str
    category: Optional[str] = None
    provider_name: Optional[str] = None
    price: Optional[float] = None


class BranchOffer(Branch):
    provider: Optional[Provider] = None
    service_price: Optional[float] = None


class PackageComponent(BaseModel):
    id: int
    name: str
    discounted_price: Optional[float] = None
    display_name: str
    display_price: Optional[float] = None


class ServiceDetail(CatalogItem):
    branches_available: int = 0
    components: List[PackageComponent] = Field(default_factory=list)


class BranchServiceOffer(BaseModel):
    """An active service available at one branch, with that branch's price."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    service_type: str = "atomic"
    discounted_price: Optional[float] = None
    short_description: Optional[str] = None
    branch_price: Optional[float] = None


class BranchDetail(Branch):
    provider: Optional[Provider] = None
    services: List[BranchServiceOffer] = Field(default_factory=list)
