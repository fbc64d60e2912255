"""Product entity.

Products are immutable once built. Both entry points, :meth:`Product.create`
for brand-new records and :meth:`Product.reconstitute` for rows and documents
read back from storage, run the same normalization (trimmed strings, blank
subcategories dropped) and the same validation, so an invalid product can never
exist in memory.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from .exceptions import InvalidProductError


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds (the index keeps no more)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def _clean_subcategories(values: Optional[Iterable[str]]) -> tuple[str, ...]:
    if not values:
        return ()
    cleaned = (str(value).strip() for value in values if value is not None)
    return tuple(value for value in cleaned if value)


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _as_utc(value: datetime, field: str) -> datetime:
    if not isinstance(value, datetime):
        raise InvalidProductError(f"Product {field} must be a datetime")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    category: str
    subcategories: tuple[str, ...]
    price: float
    latitude: float
    longitude: float
    popularity: int
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        # Frozen dataclass: normalized values are written through object.__setattr__.
        set_field = object.__setattr__
        set_field(self, "name", (self.name or "").strip())
        set_field(self, "description", (self.description or "").strip())
        set_field(self, "category", (self.category or "").strip())
        set_field(self, "subcategories", _clean_subcategories(self.subcategories))
        set_field(self, "popularity", 0 if self.popularity is None else self.popularity)
        set_field(self, "created_at", _as_utc(self.created_at, "createdAt"))
        set_field(self, "updated_at", _as_utc(self.updated_at, "updatedAt"))
        self._validate()

    def _validate(self) -> None:
        if not self.id:
            raise InvalidProductError("Product id is required")
        if not self.name:
            raise InvalidProductError("Product name is required")
        if not self.category:
            raise InvalidProductError("Product category is required")
        if not _is_finite_number(self.price) or self.price < 0:
            raise InvalidProductError("Product price must be a non-negative number")
        if not _is_finite_number(self.latitude) or not -90 <= self.latitude <= 90:
            raise InvalidProductError("Product latitude must be between -90 and 90")
        if not _is_finite_number(self.longitude) or not -180 <= self.longitude <= 180:
            raise InvalidProductError("Product longitude must be between -180 and 180")
        if isinstance(self.popularity, bool) or not isinstance(self.popularity, int) or self.popularity < 0:
            raise InvalidProductError("Product popularity must be a non-negative integer")

    @classmethod
    def create(
        cls,
        *,
        name: str,
        description: str,
        category: str,
        price: float,
        latitude: float,
        longitude: float,
        subcategories: Optional[Iterable[str]] = None,
    ) -> "Product":
        now = utc_now()
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            category=category,
            subcategories=tuple(subcategories or ()),
            price=price,
            latitude=latitude,
            longitude=longitude,
            popularity=0,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def reconstitute(
        cls,
        *,
        id: str,
        name: str,
        description: str,
        category: str,
        price: float,
        latitude: float,
        longitude: float,
        created_at: datetime,
        updated_at: datetime,
        subcategories: Optional[Iterable[str]] = None,
        popularity: Optional[int] = None,
    ) -> "Product":
        return cls(
            id=id,
            name=name,
            description=description,
            category=category,
            subcategories=tuple(subcategories or ()),
            price=price,
            latitude=latitude,
            longitude=longitude,
            popularity=popularity,
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Primitive view used by response models; every call builds new containers."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "subcategories": list(self.subcategories),
            "price": self.price,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "popularity": self.popularity,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
