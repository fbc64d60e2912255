"""Shared fakes for the search engine, cache and product fixtures."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from catalog_search.cache import CacheLookup, InMemoryCache
from catalog_search.documents import to_document
from catalog_search.es_client import EngineResponse
from catalog_search.product import Product


class FakeEngine:
    """In-memory stand-in for the search engine port that records every call."""

    def __init__(self, hits: Optional[List[Dict[str, Any]]] = None, total: Optional[int] = None) -> None:
        self.hits = hits or []
        self.total = len(self.hits) if total is None else total
        self.aggregations: Optional[Dict[str, Any]] = None
        self.suggestion: Optional[str] = None
        self.suggest_error: Optional[Exception] = None
        self.index_error: Optional[Exception] = None
        self.calls: List[tuple] = []
        self.indexed: Dict[str, Dict[str, Any]] = {}

    async def search(self, query, sort, aggregations, from_, size) -> EngineResponse:
        self.calls.append(("search", query, sort, aggregations, from_, size))
        return EngineResponse(hits=self.hits, total=self.total, aggregations=self.aggregations)

    async def match(self, query, size, source=None):
        self.calls.append(("match", query, size, source))
        return self.hits[:size]

    async def find_by_term(self, field, value):
        self.calls.append(("find_by_term", field, value))
        for hit in self.hits:
            if hit.get("_source", {}).get(field) == value:
                return hit
        return None

    async def suggest(self, text, field):
        self.calls.append(("suggest", text, field))
        if self.suggest_error is not None:
            raise self.suggest_error
        return self.suggestion

    async def index_document(self, document, doc_id):
        self.calls.append(("index_document", doc_id))
        if self.index_error is not None:
            raise self.index_error
        self.indexed[doc_id] = document

    async def bulk_index(self, documents):
        docs = list(documents)
        self.calls.append(("bulk_index", len(docs)))
        for document in docs:
            self.indexed[document["id"]] = document
        return len(docs)

    async def ping(self):
        return True

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class BrokenCache:
    """Cache whose every operation raises, as if the server went away."""

    def __init__(self) -> None:
        self.reads = 0
        self.writes = 0

    def lookup(self, key: str) -> CacheLookup:
        self.reads += 1
        raise ConnectionError("cache down")

    def get(self, key: str):
        raise ConnectionError("cache down")

    def set(self, key: str, value, ttl=None) -> None:
        self.writes += 1
        raise ConnectionError("cache down")


def make_product(**overrides: Any) -> Product:
    fields: Dict[str, Any] = {
        "id": "5f0c6b1e-3f7a-4d1a-9a55-0f3f0b8d9e21",
        "name": "Laptop HP Pavilion",
        "description": "High-performance laptop",
        "category": "Electronics",
        "subcategories": ["Laptops", "Computers"],
        "price": 999.99,
        "latitude": 40.7128,
        "longitude": -74.006,
        "popularity": 150,
        "created_at": datetime(2024, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 2, 1, 8, 0, 0, 456000, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Product.reconstitute(**fields)


def hit_for(product: Product, score: float = 1.0) -> Dict[str, Any]:
    return {"_id": product.id, "_score": score, "_source": to_document(product)}


@pytest.fixture
def product() -> Product:
    return make_product()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def memory_cache() -> InMemoryCache:
    return InMemoryCache()
