"""Elasticsearch adapter over a mocked client."""
import asyncio
import logging
from unittest.mock import MagicMock

from catalog_search.contracts import SearchFilters
from catalog_search.es_client import ElasticsearchEngine
from catalog_search.search_service import ProductSearchService


def test_search_maps_hits_total_aggregations_and_took():
    es = MagicMock()
    es.search.return_value = {
        "took": 12,
        "hits": {"total": {"value": 3, "relation": "eq"}, "hits": [{"_id": "1"}]},
        "aggregations": {"categories": {"buckets": []}},
    }

    response = asyncio.run(ElasticsearchEngine(es, "products").search({"match_all": {}}, [], {}, from_=0, size=20))

    assert response.total == 3
    assert response.hits == [{"_id": "1"}]
    assert response.aggregations == {"categories": {"buckets": []}}
    assert response.took_ms == 12
    assert es.search.call_args.kwargs["track_total_hits"] is True


def test_search_summary_logs_engine_took(caplog):
    es = MagicMock()
    es.search.return_value = {"took": 7, "hits": {"total": 0, "hits": []}}
    service = ProductSearchService(ElasticsearchEngine(es, "products"), suggestion_threshold=0)

    with caplog.at_level(logging.INFO, logger="catalog_search.search_service"):
        asyncio.run(service.search_products(SearchFilters()))

    assert "took=7ms" in caplog.text
