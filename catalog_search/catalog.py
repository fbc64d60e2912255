"""Write side of the catalog: product creation and index synchronisation."""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from .documents import to_document
from .es_client import SearchEngine
from .exceptions import ProductCreationError
from .product import Product
from .repository import ProductRepository
from .search_service import ProductSearchService

logger = logging.getLogger(__name__)

SYNC_BATCH_SIZE = 500


class ProductCatalog:
    def __init__(self, repository: ProductRepository, engine: SearchEngine) -> None:
        self.repository = repository
        self.engine = engine
        self.search = ProductSearchService(engine)

    async def create_product(
        self,
        *,
        name: str,
        description: str,
        category: str,
        price: float,
        latitude: float,
        longitude: float,
        subcategories: Optional[Iterable[str]] = None,
    ) -> Product:
        """Save a new product and index it.

        The database row is removed again when indexing fails, so the two stores
        never disagree about whether the product exists.
        """
        logger.info("Creating product: %s", name)
        product = Product.create(
            name=name,
            description=description,
            category=category,
            subcategories=subcategories,
            price=price,
            latitude=latitude,
            longitude=longitude,
        )

        saved: Product | None = None
        try:
            saved = await asyncio.to_thread(self.repository.save, product)
            logger.info("Product saved to database: %s", saved.id)
            await self.search.index_product(saved)
        except Exception as exc:
            if saved is not None:
                await asyncio.to_thread(self.repository.delete, saved.id)
                logger.warning("Rollback successful: product deleted from database: %s", saved.id)
            logger.exception("Failed to create product: %s", exc)
            raise ProductCreationError(f"Failed to create product: {exc}") from exc

        logger.info("Product created successfully: %s", saved.id)
        return saved

    async def sync_index(self, batch_size: int = SYNC_BATCH_SIZE) -> int:
        """Index every stored product, one repository page per bulk request."""
        indexed = 0
        page = 1
        while True:
            products = await asyncio.to_thread(self.repository.find_all, page, batch_size)
            if not products:
                break
            indexed += await self.engine.bulk_index(to_document(product) for product in products)
            logger.info("Indexed %s products so far", indexed)
            if len(products) < batch_size:
                break
            page += 1
        return indexed
