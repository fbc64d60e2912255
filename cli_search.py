"""Terminal client that reuses the in-process search logic."""
from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Iterable

from catalog_search.autocomplete import AutocompleteService
from catalog_search.cache import get_cache
from catalog_search.catalog import ProductCatalog
from catalog_search.config import settings
from catalog_search.contracts import DEFAULT_PAGE_SIZE, AutocompleteQuery, SearchFilters, SearchResult, SortOption
from catalog_search.es_client import get_client, get_engine
from catalog_search.exceptions import CatalogError
from catalog_search.indexing import drop_index, ensure_index
from catalog_search.repository import get_repository
from catalog_search.search_service import ProductSearchService

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def build_filters(args: argparse.Namespace, text: str | None) -> SearchFilters:
    return SearchFilters(
        text=text or None,
        category=args.category,
        subcategories=args.subcategory or None,
        min_price=args.min_price,
        max_price=args.max_price,
        lat=args.lat,
        lon=args.lon,
        radius_km=args.radius_km,
        page=args.page,
        limit=args.limit or DEFAULT_PAGE_SIZE,
        sort=args.sort,
    )


async def perform_search(filters: SearchFilters) -> SearchResult:
    return await ProductSearchService(get_engine()).search_products(filters)


async def perform_autocomplete(text: str, limit: int | None) -> list[str]:
    service = AutocompleteService(ProductSearchService(get_engine()), get_cache())
    result = await service.autocomplete(AutocompleteQuery(text=text, limit=limit))
    return result.suggestions


async def perform_sync(recreate: bool) -> int:
    es = get_client()
    if recreate:
        await drop_index(es)
    await ensure_index(es)
    return await ProductCatalog(get_repository(), get_engine()).sync_index()


def pretty_print_result(label: str, result: SearchResult) -> None:
    color = GREEN if result.total else RED
    print(f"Query: {label} | total: {color}{result.total}{RESET} | page {result.page}")
    if result.suggested_query:
        print(f"  did you mean: {result.suggested_query}")
    for idx, item in enumerate(result.items, start=1):
        print(
            f"  {idx:02d}. {item.name} | {item.category} | "
            f"{item.price:.2f} | popularity={item.popularity}"
        )
    for facet, buckets in (result.facets or {}).items():
        summary = ", ".join(f"{bucket.key}={bucket.count}" for bucket in buckets[:10])
        print(f"  [{facet}] {summary}")


def interactive_shell(args: argparse.Namespace) -> None:
    print("Interactive product search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        result = asyncio.run(perform_search(build_filters(args, query)))
        pretty_print_result(query, result)


def batch_mode(file_path: Path, args: argparse.Namespace) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            result = asyncio.run(perform_search(build_filters(args, query)))
            pretty_print_result(query, result)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CLI client for the catalog search service")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--autocomplete", action="store_true", help="Print name suggestions for the query")
    parser.add_argument("--sync", action="store_true", help="Index every product stored in the database")
    parser.add_argument("--recreate", action="store_true", help="With --sync, drop the index first")
    parser.add_argument("--category")
    parser.add_argument("--subcategory", action="append", help="May be repeated")
    parser.add_argument("--min-price", type=float)
    parser.add_argument("--max-price", type=float)
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lon", type=float)
    parser.add_argument("--radius-km", type=float)
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--limit", type=int, help="Page size (default 20) or suggestion count (default 5)")
    parser.add_argument("--sort", choices=[option.value for option in SortOption], default=SortOption.RELEVANCE.value)
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=logging.getLevelName(settings.log_level.upper()))
    try:
        return run(args)
    except CatalogError as exc:
        print(f"{RED}error:{RESET} {exc}")
        return 2


def run(args: argparse.Namespace) -> int:
    if args.sync:
        count = asyncio.run(perform_sync(args.recreate))
        print(f"Indexed {count} products into {settings.es_index}")
        return 0
    if args.batch:
        batch_mode(args.batch, args)
        return 0
    if args.autocomplete:
        if not args.query:
            print("--autocomplete needs a query")
            return 2
        for suggestion in asyncio.run(perform_autocomplete(args.query, args.limit)):
            print(suggestion)
        return 0
    if args.query:
        result = asyncio.run(perform_search(build_filters(args, args.query)))
        pretty_print_result(args.query, result)
        return 0
    interactive_shell(args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
