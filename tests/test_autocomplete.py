"""Cache-aside behaviour of the autocomplete path."""
import asyncio
from unittest.mock import MagicMock

import pytest

from catalog_search.autocomplete import AUTOCOMPLETE_CACHE_TTL, AutocompleteService, cache_key, normalize_text
from catalog_search.cache import CacheLookup, RedisCache
from catalog_search.contracts import AutocompleteQuery
from catalog_search.search_service import ProductSearchService

from conftest import BrokenCache, FakeEngine

HITS = [{"_source": {"name": "Laptop HP"}}, {"_source": {"name": "Laptop Dell"}}]


def test_normalize_text():
    assert normalize_text("  LapTop  ") == "laptop"


def test_cache_key_is_case_and_whitespace_insensitive():
    assert cache_key("  Laptop  ", 5) == cache_key("laptop", 5)
    assert cache_key("laptop", 5) == "autocomplete:laptop:5"


def test_cache_key_defaults_limit_to_five():
    assert cache_key("laptop") == cache_key("laptop", 5)


def test_distinct_text_or_limit_give_distinct_keys():
    assert cache_key("laptop", 5) != cache_key("laptop", 10)
    assert cache_key("laptop", 5) != cache_key("laptops", 5)


def test_second_identical_call_is_served_from_cache(memory_cache):
    engine = FakeEngine(hits=HITS)
    service = AutocompleteService(ProductSearchService(engine), memory_cache)

    first = asyncio.run(service.autocomplete(AutocompleteQuery(text="Lap")))
    second = asyncio.run(service.autocomplete(AutocompleteQuery(text="  lap ")))

    assert first == second
    assert first.suggestions == ["Laptop HP", "Laptop Dell"]
    assert engine.count("match") == 1


def test_miss_stores_result_with_fixed_ttl():
    cache = MagicMock()
    cache.lookup.return_value = CacheLookup.missing()
    service = AutocompleteService(ProductSearchService(FakeEngine(hits=HITS)), cache)

    asyncio.run(service.autocomplete(AutocompleteQuery(text="Lap", limit=7)))

    cache.set.assert_called_once_with(
        "autocomplete:lap:7", {"suggestions": ["Laptop HP", "Laptop Dell"]}, AUTOCOMPLETE_CACHE_TTL
    )
    assert AUTOCOMPLETE_CACHE_TTL == 300


def test_hit_returns_cached_value_without_engine_call():
    cache = MagicMock()
    cache.lookup.return_value = CacheLookup.found({"suggestions": ["Cached"]})
    engine = FakeEngine(hits=HITS)
    service = AutocompleteService(ProductSearchService(engine), cache)

    result = asyncio.run(service.autocomplete(AutocompleteQuery(text="lap")))

    assert result.suggestions == ["Cached"]
    assert engine.calls == []
    cache.set.assert_not_called()


def test_cache_errors_fail_open():
    cache = BrokenCache()
    engine = FakeEngine(hits=HITS)
    service = AutocompleteService(ProductSearchService(engine), cache)

    result = asyncio.run(service.autocomplete(AutocompleteQuery(text="lap")))

    assert result.suggestions == ["Laptop HP", "Laptop Dell"]
    assert cache.reads == 1
    assert cache.writes == 1


def test_error_lookup_is_treated_as_miss():
    cache = MagicMock()
    cache.lookup.return_value = CacheLookup.failed()
    engine = FakeEngine(hits=HITS)
    service = AutocompleteService(ProductSearchService(engine), cache)

    asyncio.run(service.autocomplete(AutocompleteQuery(text="lap")))

    assert engine.count("match") == 1
    cache.set.assert_called_once()


def test_foreign_redis_entry_is_refetched_and_overwritten():
    client = MagicMock()
    client.get.return_value = b'["stale"]'
    service = AutocompleteService(ProductSearchService(FakeEngine(hits=HITS)), RedisCache(client))

    result = asyncio.run(service.autocomplete(AutocompleteQuery(text="lap")))

    assert result.suggestions == ["Laptop HP", "Laptop Dell"]
    client.setex.assert_called_once_with(
        "autocomplete:lap:5", AUTOCOMPLETE_CACHE_TTL, '{"suggestions": ["Laptop HP", "Laptop Dell"]}'
    )


@pytest.mark.parametrize(
    "cached",
    [{"suggestions": None}, {"suggestions": "Laptop"}, {"suggestions": [1, 2]}, {}],
)
def test_malformed_hit_is_treated_as_miss(cached):
    cache = MagicMock()
    cache.lookup.return_value = CacheLookup.found(cached)
    engine = FakeEngine(hits=HITS)
    service = AutocompleteService(ProductSearchService(engine), cache)

    result = asyncio.run(service.autocomplete(AutocompleteQuery(text="lap")))

    assert result.suggestions == ["Laptop HP", "Laptop Dell"]
    assert engine.count("match") == 1
    cache.set.assert_called_once()
