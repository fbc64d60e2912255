"""Conversion between :class:`Product` and its Elasticsearch document."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from .product import Product


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(raw: str) -> datetime:
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_document(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "category": product.category,
        "subcategories": list(product.subcategories),
        "price": product.price,
        "location": {"lat": product.latitude, "lon": product.longitude},
        "popularity": product.popularity,
        "createdAt": format_timestamp(product.created_at),
        "updatedAt": format_timestamp(product.updated_at),
    }


def from_document(document: Dict[str, Any]) -> Product:
    location = document.get("location") or {}
    return Product.reconstitute(
        id=document.get("id"),
        name=document.get("name"),
        description=document.get("description"),
        category=document.get("category"),
        subcategories=document.get("subcategories"),
        price=document.get("price"),
        latitude=location.get("lat"),
        longitude=location.get("lon"),
        popularity=document.get("popularity"),
        created_at=parse_timestamp(document["createdAt"]),
        updated_at=parse_timestamp(document["updatedAt"]),
    )
