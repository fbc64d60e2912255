"""Cache-aside wrapper around autocomplete lookups."""
from __future__ import annotations

import asyncio
import logging

from .cache import CacheBackend, CacheLookup, LookupStatus
from .contracts import DEFAULT_AUTOCOMPLETE_LIMIT, AutocompleteQuery, AutocompleteResult
from .search_service import ProductSearchService

logger = logging.getLogger(__name__)

CACHE_PREFIX = "autocomplete"
AUTOCOMPLETE_CACHE_TTL = 300


def normalize_text(text: str) -> str:
    return text.strip().lower()


def cache_key(text: str, limit: int | None = None) -> str:
    """``autocomplete:<normalized text>:<limit>``, limit defaulting to 5."""
    return f"{CACHE_PREFIX}:{normalize_text(text)}:{limit or DEFAULT_AUTOCOMPLETE_LIMIT}"


class AutocompleteService:
    def __init__(self, search: ProductSearchService, cache: CacheBackend) -> None:
        self.search = search
        self.cache = cache

    async def autocomplete(self, query: AutocompleteQuery) -> AutocompleteResult:
        key = cache_key(query.text, query.limit)

        lookup = await self._read(key)
        if lookup.hit:
            try:
                cached = AutocompleteResult.from_dict(lookup.value)
            except ValueError as exc:
                logger.warning("Ignoring malformed cache entry %s: %s", key, exc)
            else:
                logger.debug("cache_hit key=%s", key)
                return cached
        elif lookup.status is LookupStatus.ERROR:
            logger.debug("cache_error key=%s, treating as miss", key)
        else:
            logger.debug("cache_miss key=%s", key)

        result = await self.search.suggest_names(query)
        await self._write(key, result)
        return result

    async def _read(self, key: str) -> CacheLookup:
        try:
            return await asyncio.to_thread(self.cache.lookup, key)
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return CacheLookup.failed()

    async def _write(self, key: str, result: AutocompleteResult) -> None:
        try:
            await asyncio.to_thread(self.cache.set, key, result.to_dict(), AUTOCOMPLETE_CACHE_TTL)
        except Exception as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
