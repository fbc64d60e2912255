"""Domain errors raised by the catalog search core."""
from __future__ import annotations


class CatalogError(Exception):
    """Base class for errors the HTTP layer knows how to present."""


class ProductNotFoundError(CatalogError):
    def __init__(self, product_id: str) -> None:
        super().__init__(f'Product with id "{product_id}" not found')
        self.product_id = product_id


class InvalidProductError(CatalogError, ValueError):
    """A product failed its normalization or validation rules."""


class InvalidSearchFiltersError(CatalogError, ValueError):
    """Search criteria are contradictory or out of bounds."""


class ProductCreationError(CatalogError):
    """Saving or indexing a new product failed; the save was rolled back."""
