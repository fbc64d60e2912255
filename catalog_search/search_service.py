"""Search orchestration on top of the search engine port."""
from __future__ import annotations

import logging
from typing import List, Optional

from .config import settings
from .contracts import AutocompleteQuery, AutocompleteResult, SearchFilters, SearchResult
from .documents import from_document, to_document
from .es_client import SearchEngine
from .exceptions import ProductNotFoundError
from .product import Product
from .query_builder import (
    build_aggregations,
    build_autocomplete_query,
    build_search_query,
    build_sort,
    extract_facets,
)

logger = logging.getLogger(__name__)

SUGGESTION_FIELD = "name"


def _unique(values: List[str]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


class ProductSearchService:
    """Runs compiled queries against the engine and shapes the results."""

    def __init__(self, engine: SearchEngine, suggestion_threshold: int | None = None) -> None:
        self.engine = engine
        self.suggestion_threshold = (
            settings.suggestion_threshold if suggestion_threshold is None else suggestion_threshold
        )

    async def search_products(self, filters: SearchFilters) -> SearchResult:
        query = build_search_query(filters)
        sort = build_sort(filters.sort)
        aggregations = build_aggregations()

        response = await self.engine.search(query, sort, aggregations, from_=filters.offset, size=filters.limit)
        items = [from_document(hit.get("_source", {})) for hit in response.hits]
        facets = extract_facets(response.aggregations)

        suggested_query = None
        if filters.text and response.total < self.suggestion_threshold:
            suggested_query = await self._suggest(filters.text)

        logger.info(
            "search text=%r category=%r sort=%s page=%s hits=%s total=%s took=%sms",
            filters.text,
            filters.category,
            getattr(filters.sort, "value", filters.sort),
            filters.page,
            len(items),
            response.total,
            response.took_ms,
        )
        return SearchResult(
            items=items,
            total=response.total,
            page=filters.page,
            limit=filters.limit,
            facets=facets,
            suggested_query=suggested_query,
        )

    async def _suggest(self, text: str) -> Optional[str]:
        # A missing suggestion never fails the search itself.
        try:
            return await self.engine.suggest(text, SUGGESTION_FIELD)
        except Exception as exc:
            logger.warning("Suggestion lookup failed for %r: %s", text, exc)
            return None

    async def get_by_id(self, product_id: str) -> Product:
        hit = await self.engine.find_by_term("id", product_id)
        if hit is None:
            raise ProductNotFoundError(product_id)
        return from_document(hit.get("_source", {}))

    async def suggest_names(self, query: AutocompleteQuery) -> AutocompleteResult:
        """Uncached autocomplete lookup: matching product names, de-duplicated in engine order."""
        hits = await self.engine.match(
            build_autocomplete_query(query.text),
            size=query.effective_limit,
            source=["name"],
        )
        names = [hit.get("_source", {}).get("name") for hit in hits]
        return AutocompleteResult(suggestions=_unique([name for name in names if isinstance(name, str)]))

    async def index_product(self, product: Product) -> None:
        await self.engine.index_document(to_document(product), product.id)
        logger.info("Product indexed: %s", product.id)
