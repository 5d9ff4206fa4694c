"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from carefind.core.config import Settings
from carefind.db.memory import MemoryCatalogStore
from carefind.models import CatalogItem

SAMPLE_CATALOG = Path(__file__).resolve().parent.parent / "data" / "catalog.sample.json"


def make_item(id: int, name: str, **kw) -> CatalogItem:
    """Build an active CatalogItem with sensible defaults."""
    return CatalogItem(id=id, name=name, **kw)


def service_doc(id: int, name: str, **kw) -> dict:
    doc = {
        "id": id,
        "name": name,
        "keywords": "",
        "short_description": "",
        "description": "",
        "discounted_price": 100000,
        "service_type": "atomic",
        "category": "lab",
        "is_bookable": True,
        "provider_id": 1,
        "status": "active",
        "deleted_at": None,
    }
    doc.update(kw)
    return doc


# ============================================================
# Settings
# ============================================================


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, MONGO_URI="", CATALOG_SEED_PATH="")


# ============================================================
# Catalog data
# ============================================================


@pytest.fixture
def catalog_docs():
    return {
        "providers": [
            {"id": 1, "brand_name": "An Bình", "logo_url": None, "partnership_status": "active", "deleted_at": None},
            {"id": 2, "brand_name": "Medlab", "logo_url": None, "partnership_status": "active", "deleted_at": None},
            {"id": 3, "brand_name": "Closed Clinic", "partnership_status": "inactive", "deleted_at": None},
        ],
        "branches": [
            {"id": 10, "provider_id": 1, "name": "An Bình Q1", "district": "Quận 1", "city": "Hồ Chí Minh", "status": "active"},
            {"id": 11, "provider_id": 1, "name": "An Bình Thủ Đức", "district": "Thủ Đức", "city": "Hồ Chí Minh", "status": "active"},
            {"id": 20, "provider_id": 2, "name": "Medlab Cầu Giấy", "district": "Cầu Giấy", "city": "Hà Nội", "status": "active"},
            {"id": 21, "provider_id": 2, "name": "Medlab Old", "district": "Đống Đa", "city": "Hà Nội", "status": "inactive"},
        ],
        "services": [
            service_doc(1, "Khám Tổng Quát Cơ Bản", keywords="kham benh,tong quat", service_type="package",
                        category="checkup", discounted_price=1200000),
            service_doc(2, "Xét Nghiệm Máu", keywords="mau", provider_id=2, discounted_price=120000),
            service_doc(3, "Đường Huyết Lúc Đói", keywords="duong huyet,mau", provider_id=2,
                        discounted_price=50000, canonical_service_id=2),
            service_doc(4, "Khám Tổng Quát Nâng Cao", keywords="kham benh,tong quat", service_type="package",
                        category="checkup", discounted_price=2500000, is_bookable=False),
            service_doc(5, "Siêu Âm Bụng", keywords="sieu am", status="inactive"),
            service_doc(6, "Khám Mắt", keywords="kham mat", deleted_at="2024-01-01"),
        ],
        "branch_services": [
            {"service_id": 1, "branch_id": 10, "is_available": True, "branch_price": None},
            {"service_id": 1, "branch_id": 11, "is_available": True, "branch_price": 1100000},
            {"service_id": 2, "branch_id": 20, "is_available": True, "branch_price": None},
            {"service_id": 2, "branch_id": 21, "is_available": True, "branch_price": None},
            {"service_id": 3, "branch_id": 20, "is_available": False, "branch_price": None},
            {"service_id": 4, "branch_id": 10, "is_available": True, "branch_price": None},
        ],
        "package_components": [
            {"package_service_id": 1, "component_service_id": 3, "display_order": 2},
            {"package_service_id": 1, "component_service_id": 2, "display_order": 1},
        ],
    }


@pytest.fixture
def store(catalog_docs):
    return MemoryCatalogStore(catalog_docs)
