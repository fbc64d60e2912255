"""FastAPI application wiring the catalog search services."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import UUID4, ValidationError

from .autocomplete import AutocompleteService
from .cache import get_cache
from .catalog import ProductCatalog
from .config import settings
from .contracts import DEFAULT_AUTOCOMPLETE_LIMIT, DEFAULT_PAGE_SIZE, SortOption
from .es_client import get_client, get_engine
from .exceptions import InvalidProductError, InvalidSearchFiltersError, ProductNotFoundError
from .indexing import ensure_index
from .models import (
    AutocompleteParams,
    AutocompleteResponse,
    CreateProductRequest,
    ErrorResponse,
    ProductResponse,
    SearchProductsQuery,
    SearchProductsResponse,
)
from .repository import get_repository
from .search_service import ProductSearchService

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# ``force=True`` replaces uvicorn's default handlers so every module logs the same way.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Product Catalog Search")


def get_search_service() -> ProductSearchService:
    return ProductSearchService(get_engine())


def get_autocomplete_service(
    search: ProductSearchService = Depends(get_search_service),
) -> AutocompleteService:
    return AutocompleteService(search, get_cache())


def get_catalog() -> ProductCatalog:
    return ProductCatalog(get_repository(), get_engine())


def _error(request: Request, status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(
        statusCode=status_code,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
        message=message,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(ProductNotFoundError)
async def not_found_handler(request: Request, exc: ProductNotFoundError) -> JSONResponse:
    return _error(request, status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(InvalidProductError)
@app.exception_handler(InvalidSearchFiltersError)
async def invalid_input_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error(request, status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(Exception)
async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s: %s", request.url.path, exc)
    return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@app.on_event("startup")
async def startup_event() -> None:
    if settings.ensure_index_on_startup:
        await ensure_index(get_client())


def search_params(
    text: Optional[str] = Query(None, max_length=500),
    category: Optional[str] = Query(None),
    subcategories: Optional[List[str]] = Query(None, description="Repeated or comma separated"),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, alias="radiusKm", gt=0),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    sort: SortOption = Query(SortOption.RELEVANCE),
) -> SearchProductsQuery:
    try:
        return SearchProductsQuery(
            text=text,
            category=category,
            subcategories=subcategories,
            minPrice=min_price,
            maxPrice=max_price,
            lat=lat,
            lon=lon,
            radiusKm=radius_km,
            page=page,
            limit=limit,
            sort=sort,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


def autocomplete_params(
    text: str = Query(..., min_length=1),
    limit: int = Query(DEFAULT_AUTOCOMPLETE_LIMIT, ge=1, le=20),
) -> AutocompleteParams:
    try:
        return AutocompleteParams(text=text, limit=limit)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


@app.get("/health")
async def health(search: ProductSearchService = Depends(get_search_service)) -> dict:
    return {
        "elasticsearch": await search.engine.ping(),
        "index": settings.es_index,
    }


@app.get("/products", response_model=SearchProductsResponse)
async def search_products(
    params: SearchProductsQuery = Depends(search_params),
    search: ProductSearchService = Depends(get_search_service),
) -> SearchProductsResponse:
    result = await search.search_products(params.to_filters())
    return SearchProductsResponse.from_result(result)


@app.get("/products/autocomplete", response_model=AutocompleteResponse)
async def autocomplete(
    params: AutocompleteParams = Depends(autocomplete_params),
    service: AutocompleteService = Depends(get_autocomplete_service),
) -> AutocompleteResponse:
    result = await service.autocomplete(params.to_query())
    return AutocompleteResponse.from_result(result)


@app.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: UUID4,
    search: ProductSearchService = Depends(get_search_service),
) -> ProductResponse:
    product = await search.get_by_id(str(product_id))
    return ProductResponse.from_domain(product)


@app.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: CreateProductRequest,
    catalog: ProductCatalog = Depends(get_catalog),
) -> ProductResponse:
    product = await catalog.create_product(**payload.model_dump())
    return ProductResponse.from_domain(product)
