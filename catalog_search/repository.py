"""Relational storage for the canonical product records.

Uses SQLAlchemy; any database it supports works (PostgreSQL in production,
SQLite locally and in tests).
"""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from sqlalchemy import JSON, Column, DateTime, Float, Integer, Numeric, String, Text, create_engine, func
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .product import Product

logger = logging.getLogger(__name__)

Base = declarative_base()


class ProductRow(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, index=True)
    subcategories = Column(JSON, nullable=False, default=list)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    popularity = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class ProductRepository(Protocol):
    def save(self, product: Product) -> Product: ...

    def find_by_id(self, product_id: str) -> Optional[Product]: ...

    def find_all(self, page: int = 1, limit: int = 20) -> List[Product]: ...

    def delete(self, product_id: str) -> None: ...

    def exists(self, product_id: str) -> bool: ...

    def count(self) -> int: ...


def create_db_engine(url: str | None = None) -> Engine:
    url = url or settings.database_url
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url == "sqlite://":
            # One shared connection, otherwise every thread sees its own empty database.
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def _to_domain(row: ProductRow) -> Product:
    return Product.reconstitute(
        id=row.id,
        name=row.name,
        description=row.description,
        category=row.category,
        subcategories=list(row.subcategories or []),
        price=float(row.price),
        latitude=row.latitude,
        longitude=row.longitude,
        popularity=row.popularity,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _apply(row: ProductRow, product: Product) -> ProductRow:
    row.name = product.name
    row.description = product.description
    row.category = product.category
    row.subcategories = list(product.subcategories)
    row.price = product.price
    row.latitude = product.latitude
    row.longitude = product.longitude
    row.popularity = product.popularity
    row.created_at = product.created_at
    row.updated_at = product.updated_at
    return row


class SqlProductRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def save(self, product: Product) -> Product:
        with self.Session() as session:
            row = session.get(ProductRow, product.id)
            if row is None:
                logger.info("Creating new product: %s", product.name)
                row = ProductRow(id=product.id)
                session.add(row)
            else:
                logger.info("Updating product with id: %s", product.id)
            _apply(row, product)
            session.commit()
            return _to_domain(row)

    def find_by_id(self, product_id: str) -> Optional[Product]:
        with self.Session() as session:
            row = session.get(ProductRow, product_id)
            return _to_domain(row) if row is not None else None

    def find_all(self, page: int = 1, limit: int = 20) -> List[Product]:
        with self.Session() as session:
            rows = (
                session.query(ProductRow)
                .order_by(ProductRow.created_at.desc(), ProductRow.id)
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
            return [_to_domain(row) for row in rows]

    def delete(self, product_id: str) -> None:
        with self.Session() as session:
            session.query(ProductRow).filter(ProductRow.id == product_id).delete()
            session.commit()

    def exists(self, product_id: str) -> bool:
        with self.Session() as session:
            return session.get(ProductRow, product_id) is not None

    def count(self) -> int:
        with self.Session() as session:
            return session.query(func.count(ProductRow.id)).scalar() or 0


_repository: SqlProductRepository | None = None


def get_repository() -> SqlProductRepository:
    global _repository
    if _repository is None:
        _repository = SqlProductRepository(create_db_engine())
        _repository.create_schema()
    return _repository
