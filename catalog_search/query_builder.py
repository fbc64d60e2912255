"""Pure builders for Elasticsearch query, sort and aggregation payloads.

Nothing in this module performs I/O, so every function is safe to call from
any number of concurrent requests.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from .contracts import FacetBucket, SearchFilters, SortOption, ensure_price_range

logger = logging.getLogger(__name__)

TEXT_FIELDS = ["name^2", "description"]

CATEGORY_FACET_SIZE = 50
SUBCATEGORY_FACET_SIZE = 100
PRICE_RANGES: List[Dict[str, Any]] = [
    {"key": "0-50", "to": 50},
    {"key": "50-100", "from": 50, "to": 100},
    {"key": "100-500", "from": 100, "to": 500},
    {"key": "500-1000", "from": 500, "to": 1000},
    {"key": "1000+", "from": 1000},
]
FACET_NAMES = ("categories", "subcategories", "price_ranges")

_SORTS: Dict[SortOption, tuple[tuple[str, str], ...]] = {
    SortOption.RELEVANCE: (("_score", "desc"), ("popularity", "desc")),
    SortOption.POPULARITY: (("popularity", "desc"), ("_score", "desc")),
    SortOption.CREATED_AT: (("createdAt", "desc"),),
    SortOption.PRICE_ASC: (("price", "asc"),),
    SortOption.PRICE_DESC: (("price", "desc"),),
}


def build_search_query(filters: SearchFilters) -> Dict[str, Any]:
    """Compile filters into a bool query, or ``match_all`` when nothing applies."""
    ensure_price_range(filters.min_price, filters.max_price)

    must: List[dict] = []
    filter_: List[dict] = []

    if filters.text:
        must.append(
            {
                "multi_match": {
                    "query": filters.text,
                    "fields": list(TEXT_FIELDS),
                    "fuzziness": "AUTO",
                    "operator": "and",
                }
            }
        )

    if filters.category:
        filter_.append({"term": {"category": filters.category}})

    if filters.subcategories:
        filter_.append({"terms": {"subcategories": list(filters.subcategories)}})

    if filters.min_price is not None or filters.max_price is not None:
        price_range: Dict[str, float] = {}
        if filters.min_price is not None:
            price_range["gte"] = filters.min_price
        if filters.max_price is not None:
            price_range["lte"] = filters.max_price
        filter_.append({"range": {"price": price_range}})

    if filters.lat is not None and filters.lon is not None and filters.radius_km:
        filter_.append(
            {
                "geo_distance": {
                    "distance": f"{filters.radius_km}km",
                    "location": {"lat": filters.lat, "lon": filters.lon},
                }
            }
        )

    if not must and not filter_:
        return {"match_all": {}}

    bool_clause: Dict[str, List[dict]] = {}
    if must:
        bool_clause["must"] = must
    if filter_:
        bool_clause["filter"] = filter_
    query = {"bool": bool_clause}
    logger.debug("ES search query=%s", query)
    return query


def build_sort(option: Union[SortOption, str, None] = None) -> List[Dict[str, Any]]:
    """Resolve a sort option; anything unrecognised falls back to relevance."""
    try:
        resolved = SortOption(option) if option is not None else SortOption.RELEVANCE
    except ValueError:
        resolved = SortOption.RELEVANCE
    return [{field: {"order": order}} for field, order in _SORTS[resolved]]


def build_aggregations() -> Dict[str, Any]:
    return {
        "categories": {"terms": {"field": "category", "size": CATEGORY_FACET_SIZE}},
        "subcategories": {"terms": {"field": "subcategories", "size": SUBCATEGORY_FACET_SIZE}},
        "price_ranges": {
            "range": {
                "field": "price",
                "ranges": [dict(bucket) for bucket in PRICE_RANGES],
            }
        },
    }


def _buckets(aggregation: Any) -> Optional[List[FacetBucket]]:
    if not isinstance(aggregation, dict):
        return None
    buckets = aggregation.get("buckets")
    if not isinstance(buckets, list):
        return None
    return [
        FacetBucket(key=str(bucket.get("key")), count=bucket.get("doc_count") or 0)
        for bucket in buckets
        if isinstance(bucket, dict)
    ]


def extract_facets(aggregations: Optional[Dict[str, Any]]) -> Optional[Dict[str, List[FacetBucket]]]:
    """Turn raw aggregation results into facets, skipping any that are missing."""
    if not aggregations:
        return None
    facets: Dict[str, List[FacetBucket]] = {}
    for name in FACET_NAMES:
        buckets = _buckets(aggregations.get(name))
        if buckets is not None:
            facets[name] = buckets
    return facets


def build_autocomplete_query(text: str) -> Dict[str, Any]:
    """Edge-n-gram prefix (x3), phrase prefix (x2) and fuzzy (x1) matches on name."""
    return {
        "bool": {
            "should": [
                {"match": {"name.autocomplete": {"query": text, "boost": 3}}},
                {"match_phrase_prefix": {"name": {"query": text, "boost": 2}}},
                {"fuzzy": {"name": {"value": text, "fuzziness": "AUTO", "boost": 1}}},
            ],
            "minimum_should_match": 1,
        }
    }
