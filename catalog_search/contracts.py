"""Request and result types shared by the search core and its adapters."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .exceptions import InvalidSearchFiltersError
from .product import Product

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_AUTOCOMPLETE_LIMIT = 5


class SortOption(str, Enum):
    RELEVANCE = "relevance"
    POPULARITY = "popularity"
    CREATED_AT = "created_at"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"


def ensure_price_range(min_price: Optional[float], max_price: Optional[float]) -> None:
    if min_price is not None and max_price is not None and min_price > max_price:
        raise InvalidSearchFiltersError("minPrice must be less than or equal to maxPrice")


@dataclass(frozen=True)
class SearchFilters:
    text: Optional[str] = None
    category: Optional[str] = None
    subcategories: Optional[List[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    radius_km: Optional[float] = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    sort: Union[SortOption, str] = SortOption.RELEVANCE

    def __post_init__(self) -> None:
        if self.page < 1:
            raise InvalidSearchFiltersError("page must be greater than or equal to 1")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise InvalidSearchFiltersError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if (self.lat is None) != (self.lon is None):
            raise InvalidSearchFiltersError("Both lat and lon must be provided together")
        ensure_price_range(self.min_price, self.max_price)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class FacetBucket:
    key: str
    count: int


@dataclass
class SearchResult:
    items: List[Product]
    total: int
    page: int
    limit: int
    facets: Optional[Dict[str, List[FacetBucket]]] = None
    suggested_query: Optional[str] = None


@dataclass(frozen=True)
class AutocompleteQuery:
    text: str
    limit: Optional[int] = None

    @property
    def effective_limit(self) -> int:
        return self.limit or DEFAULT_AUTOCOMPLETE_LIMIT


@dataclass
class AutocompleteResult:
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"suggestions": list(self.suggestions)}

    @classmethod
    def from_dict(cls, payload: Any) -> "AutocompleteResult":
        suggestions = payload.get("suggestions") if isinstance(payload, dict) else None
        if not isinstance(suggestions, list) or not all(isinstance(item, str) for item in suggestions):
            raise ValueError("Autocomplete payload must be {\"suggestions\": [str, ...]}")
        return cls(suggestions=list(suggestions))
