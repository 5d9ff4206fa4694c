"""Tests for CatalogSearchService: retrieval, location filter, end-to-end search."""

from unittest.mock import Mock

import pytest

from carefind.core.exceptions import StoreUnavailable
from carefind.db.memory import MemoryCatalogStore
from carefind.models import SearchFilters
from carefind.services.search import CatalogSearchService, build_filters, parse_int, parse_number

from conftest import service_doc


@pytest.fixture
def service(store, settings):
    return CatalogSearchService(store, settings)


def _ids(items):
    return [it.id for it in items]


# ============================================================
# Filter parsing
# ============================================================


class TestFilterParsing:
    def test_valid_values(self):
        f = build_filters(provider_id="2", service_type=" package ", min_price="100", max_price="2500.5")
        assert f == SearchFilters(provider_id=2, service_type="package", min_price=100.0, max_price=2500.5)

    @pytest.mark.parametrize("raw", ["abc", "", "  ", None, "nan", "inf"])
    def test_malformed_price_is_not_applied(self, raw):
        assert parse_number("min_price", raw) is None

    def test_malformed_int(self):
        assert parse_int("provider_id", "1.5") is None
        assert parse_int("provider_id", "x") is None
        assert parse_int("limit", "20") == 20

    def test_malformed_filter_is_logged(self, caplog):
        with caplog.at_level("WARNING"):
            build_filters(min_price="cheap")
        assert "min_price" in caplog.text


# ============================================================
# Retrieval
# ============================================================


class TestRetrieve:
    def test_any_token_on_keywords_or_name(self, service):
        # inactive (5) and deleted (6) items never come back
        assert _ids(service.retrieve("kham", SearchFilters())) == [1, 4]
        assert _ids(service.retrieve("mau huyet", SearchFilters())) == [2, 3]

    def test_folded_tokens_miss_accented_names(self, service):
        assert _ids(service.retrieve("XÉT", SearchFilters())) == []  # tokens are folded, name is not
        assert _ids(service.retrieve("nghiem", SearchFilters())) == []

    def test_empty_query_uses_filters_only(self, service):
        assert _ids(service.retrieve("", SearchFilters())) == [1, 2, 3, 4]
        assert _ids(service.retrieve("x", SearchFilters())) == [1, 2, 3, 4]

    def test_structural_filters_are_anded(self, service):
        assert _ids(service.retrieve("", SearchFilters(provider_id=2))) == [2, 3]
        assert _ids(service.retrieve("", SearchFilters(service_type="package"))) == [1, 4]
        assert _ids(service.retrieve("", SearchFilters(min_price=100000, max_price=1500000))) == [1, 2]
        assert _ids(service.retrieve("mau", SearchFilters(max_price=60000))) == [3]

    def test_retrieval_cap(self, settings):
        docs = {"services": [service_doc(i, f"Xét nghiệm {i}", keywords="xet nghiem") for i in range(1, 31)]}
        capped = settings.model_copy(update={"SEARCH_RETRIEVAL_CAP": 12})
        svc = CatalogSearchService(MemoryCatalogStore(docs), capped)
        assert len(svc.retrieve("xet", SearchFilters())) == 12

    def test_keyword_list_matches_joined_form(self, settings):
        # list keywords match the same comma-joined text CatalogItem exposes
        docs = {"services": [service_doc(1, "Xét Nghiệm Máu", keywords=["xet nghiem", "mau"])]}
        svc = CatalogSearchService(MemoryCatalogStore(docs), settings)
        [item] = svc.retrieve("nghiem,mau", SearchFilters())
        assert item.keywords == "xet nghiem,mau"
        assert svc.retrieve("'mau'", SearchFilters()) == []

    def test_store_receives_tokens_and_cap(self, settings):
        store = Mock()
        store.find_items.return_value = []
        CatalogSearchService(store, settings).retrieve("Khám  a Máu", SearchFilters(provider_id=1))
        query = store.find_items.call_args[0][0]
        assert query.tokens == ["kham", "mau"]
        assert query.limit == 500
        assert query.filters.provider_id == 1


# ============================================================
# Geographic filter
# ============================================================


class TestFilterByLocation:
    def test_no_constraint_is_noop(self, service, store):
        items = service.retrieve("", SearchFilters())
        assert service.filter_by_location(items) is items
        assert service.filter_by_location(items, "  ", None) is items

    def test_district_is_accent_insensitive(self, service):
        items = service.retrieve("", SearchFilters())
        assert _ids(service.filter_by_location(items, district="quan 1")) == [1, 4]
        assert _ids(service.filter_by_location(items, district="Thủ Đức")) == [1]

    def test_city_and_unavailable_links(self, service):
        items = service.retrieve("", SearchFilters())
        # item 3 has only an unavailable link
        assert _ids(service.filter_by_location(items, city="Hà Nội")) == [2]

    def test_both_constraints_must_match(self, service):
        items = service.retrieve("", SearchFilters())
        assert _ids(service.filter_by_location(items, district="cau giay", city="ho chi minh")) == []
        assert _ids(service.filter_by_location(items, district="cau giay", city="ha noi")) == [2]

    def test_items_without_links_are_excluded(self, settings):
        docs = {
            "services": [service_doc(1, "Khám Tổng Quát", keywords="kham")],
            "branches": [{"id": 1, "district": "Quận 1", "city": "Hồ Chí Minh", "status": "active"}],
        }
        svc = CatalogSearchService(MemoryCatalogStore(docs), settings)
        items = svc.retrieve("kham", SearchFilters())
        assert len(items) == 1
        assert svc.filter_by_location(items, city="ho chi minh") == []

    def test_only_narrows(self, service):
        items = service.retrieve("kham", SearchFilters())
        narrowed = service.filter_by_location(items, city="ho chi minh")
        assert set(_ids(narrowed)) <= set(_ids(items))

    def test_empty_candidates_skip_store(self, settings):
        store = Mock()
        assert CatalogSearchService(store, settings).filter_by_location([], city="ha noi") == []
        store.find_availability_links.assert_not_called()


# ============================================================
# Search
# ============================================================


class TestSearch:
    def test_ranks_best_match_first(self, service):
        res = service.search("kham tong quat")
        assert res.query == "kham tong quat"
        assert _ids(res.items) == [1, 4]
        assert res.items[0].score > 0
        assert res.total == 2

    def test_provider_is_joined(self, service):
        res = service.search("mau")
        assert res.items[0].provider.brand_name == "Medlab"

    def test_without_query_keeps_store_order(self, service):
        res = service.search(None)
        assert res.query is None
        assert _ids(res.items) == [1, 2, 3, 4]
        assert all(it.score is None for it in res.items)

    def test_limit(self, service):
        assert _ids(service.search("", limit=2).items) == [1, 2]
        assert len(service.search("", limit=0).items) == 4

    def test_zero_score_suppression_end_to_end(self, settings):
        docs = {"services": [service_doc(i, f"Vắc Xin Zona {i}") for i in range(1, 11)]
                + [service_doc(11, "Khám Mắt"), service_doc(12, "Nội Soi")]}
        svc = CatalogSearchService(MemoryCatalogStore(docs), settings)
        # one-letter query: no tokens, so every item is a candidate
        res = svc.search("z")
        assert res.total == 10
        assert 11 not in _ids(res.items) and 12 not in _ids(res.items)

    def test_weak_matches_kept_when_few_positive(self, settings):
        docs = {"services": [service_doc(1, "Vắc Xin Zona"), service_doc(2, "Khám Mắt"), service_doc(3, "Nội Soi")]}
        res = CatalogSearchService(MemoryCatalogStore(docs), settings).search("z")
        assert _ids(res.items) == [1, 2, 3]

    def test_location_then_scoring(self, service):
        res = service.search("kham", city="Hồ Chí Minh", filters=SearchFilters(service_type="package"))
        assert _ids(res.items) == [1, 4]

    def test_empty_result_is_not_an_error(self, service):
        res = service.search("vaccine")
        assert res.items == [] and res.total == 0

    def test_store_failure_propagates(self, settings):
        store = Mock()
        store.find_items.side_effect = StoreUnavailable("database_unavailable: ServerSelectionTimeoutError")
        with pytest.raises(StoreUnavailable):
            CatalogSearchService(store, settings).search("kham")

    def test_link_failure_propagates(self, settings, store):
        failing = Mock(wraps=store)
        failing.find_availability_links.side_effect = StoreUnavailable("database_unavailable: AutoReconnect")
        with pytest.raises(StoreUnavailable):
            CatalogSearchService(failing, settings).search("kham", district="quan 1")
