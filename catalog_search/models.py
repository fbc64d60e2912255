"""Pydantic models for request/response payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .contracts import (
    DEFAULT_AUTOCOMPLETE_LIMIT,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AutocompleteQuery,
    AutocompleteResult,
    SearchFilters,
    SearchResult,
    SortOption,
)
from .product import Product


def _split_csv(value: object) -> object:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",")]
    if isinstance(value, list):
        parts: List[str] = []
        for item in value:
            parts.extend(_split_csv(item) if isinstance(item, str) else [item])
        return parts
    return value


class SearchProductsQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = Field(None, max_length=500, description="Text to search in name and description")
    category: Optional[str] = None
    subcategories: Optional[List[str]] = None
    min_price: Optional[float] = Field(None, alias="minPrice", ge=0)
    max_price: Optional[float] = Field(None, alias="maxPrice", ge=0)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lon: Optional[float] = Field(None, ge=-180, le=180)
    radius_km: Optional[float] = Field(None, alias="radiusKm", gt=0)
    page: int = Field(1, ge=1)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    sort: SortOption = SortOption.RELEVANCE

    @field_validator("subcategories", mode="before")
    @classmethod
    def _split_subcategories(cls, value: object) -> object:
        return _split_csv(value)

    @model_validator(mode="after")
    def _check_pairs(self) -> "SearchProductsQuery":
        if (self.lat is None) != (self.lon is None):
            raise ValueError("Both lat and lon must be provided together")
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("minPrice must be less than or equal to maxPrice")
        return self

    def to_filters(self) -> SearchFilters:
        return SearchFilters(
            text=self.text,
            category=self.category,
            subcategories=[item for item in self.subcategories or [] if item] or None,
            min_price=self.min_price,
            max_price=self.max_price,
            lat=self.lat,
            lon=self.lon,
            radius_km=self.radius_km,
            page=self.page,
            limit=self.limit,
            sort=self.sort,
        )


class AutocompleteParams(BaseModel):
    text: str = Field(..., min_length=1, examples=["iph"])
    limit: int = Field(DEFAULT_AUTOCOMPLETE_LIMIT, ge=1, le=20)

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value

    def to_query(self) -> AutocompleteQuery:
        return AutocompleteQuery(text=self.text, limit=self.limit)


class CreateProductRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Laptop HP Pavilion"])
    description: str = Field(..., min_length=1, max_length=2000)
    category: str = Field(..., min_length=1, max_length=100, examples=["Electronics"])
    subcategories: List[str] = Field(default_factory=list, examples=[["Laptops", "Computers"]])
    price: float = Field(..., ge=0)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    @field_validator("subcategories", mode="before")
    @classmethod
    def _split_subcategories(cls, value: object) -> object:
        return _split_csv(value) if value is not None else []


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str
    subcategories: List[str]
    price: float
    latitude: float
    longitude: float
    popularity: int
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_domain(cls, product: Product) -> "ProductResponse":
        return cls(**product.to_dict())


class FacetBucketResponse(BaseModel):
    key: str
    count: int


class SearchProductsResponse(BaseModel):
    items: List[ProductResponse]
    total: int
    page: int
    limit: int
    facets: Optional[Dict[str, List[FacetBucketResponse]]] = None
    suggestedQuery: Optional[str] = None

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchProductsResponse":
        facets = None
        if result.facets is not None:
            facets = {
                name: [FacetBucketResponse(key=bucket.key, count=bucket.count) for bucket in buckets]
                for name, buckets in result.facets.items()
            }
        return cls(
            items=[ProductResponse.from_domain(item) for item in result.items],
            total=result.total,
            page=result.page,
            limit=result.limit,
            facets=facets,
            suggestedQuery=result.suggested_query,
        )


class AutocompleteResponse(BaseModel):
    suggestions: List[str]

    @classmethod
    def from_result(cls, result: AutocompleteResult) -> "AutocompleteResponse":
        return cls(suggestions=list(result.suggestions))


class ErrorResponse(BaseModel):
    statusCode: int
    timestamp: str
    path: str
    message: str
