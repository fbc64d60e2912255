"""Elasticsearch client factory and the search engine port.

The rest of the code works against the official synchronous client. Blocking
calls are wrapped via ``asyncio.to_thread`` so the async services never block
the event loop.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from elasticsearch import Elasticsearch, helpers

from .config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_client() -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", settings.es_host)
    return Elasticsearch(settings.es_host)


@dataclass
class EngineResponse:
    hits: List[Dict[str, Any]]
    total: int
    aggregations: Optional[Dict[str, Any]] = None
    took_ms: int = 0


class SearchEngine(Protocol):
    async def search(
        self,
        query: Dict[str, Any],
        sort: Sequence[Dict[str, Any]],
        aggregations: Dict[str, Any],
        from_: int,
        size: int,
    ) -> EngineResponse: ...

    async def match(
        self, query: Dict[str, Any], size: int, source: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]: ...

    async def find_by_term(self, field: str, value: str) -> Optional[Dict[str, Any]]: ...

    async def suggest(self, text: str, field: str) -> Optional[str]: ...

    async def index_document(self, document: Dict[str, Any], doc_id: str) -> None: ...

    async def bulk_index(self, documents: Iterable[Dict[str, Any]]) -> int: ...

    async def ping(self) -> bool: ...


def _body(response: Any) -> Dict[str, Any]:
    # ObjectApiResponse keeps the decoded JSON on ``.body``; fakes hand back plain dicts.
    return getattr(response, "body", response) or {}


def _total(hits: Dict[str, Any]) -> int:
    total = hits.get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


class ElasticsearchEngine:
    """Search engine port backed by a single Elasticsearch index."""

    def __init__(self, es: Elasticsearch, index: str) -> None:
        self.es = es
        self.index = index

    async def search(
        self,
        query: Dict[str, Any],
        sort: Sequence[Dict[str, Any]],
        aggregations: Dict[str, Any],
        from_: int,
        size: int,
    ) -> EngineResponse:
        response = await asyncio.to_thread(
            self.es.search,
            index=self.index,
            query=query,
            sort=list(sort),
            aggs=aggregations,
            from_=from_,
            size=size,
            track_total_hits=True,
        )
        body = _body(response)
        hits = body.get("hits", {})
        return EngineResponse(
            hits=hits.get("hits", []),
            total=_total(hits),
            aggregations=body.get("aggregations"),
            took_ms=body.get("took", 0),
        )

    async def match(
        self, query: Dict[str, Any], size: int, source: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        kwargs: Dict[str, Any] = {"index": self.index, "query": query, "size": size}
        if source is not None:
            kwargs["source"] = source
        response = await asyncio.to_thread(self.es.search, **kwargs)
        return _body(response).get("hits", {}).get("hits", [])

    async def find_by_term(self, field: str, value: str) -> Optional[Dict[str, Any]]:
        hits = await self.match({"term": {field: value}}, size=1)
        return hits[0] if hits else None

    async def suggest(self, text: str, field: str) -> Optional[str]:
        response = await asyncio.to_thread(
            self.es.search,
            index=self.index,
            size=0,
            suggest={
                "text_suggestion": {
                    "text": text,
                    "term": {"field": field, "suggest_mode": "popular"},
                }
            },
        )
        entries = _body(response).get("suggest", {}).get("text_suggestion", [])
        if not entries:
            return None
        options = entries[0].get("options") or []
        return options[0].get("text") if options else None

    async def index_document(self, document: Dict[str, Any], doc_id: str) -> None:
        await asyncio.to_thread(
            self.es.index,
            index=self.index,
            id=doc_id,
            document=document,
            refresh="wait_for",
        )

    def _iter_actions(self, documents: Iterable[Dict[str, Any]]) -> Iterable[dict]:
        for document in documents:
            yield {"_index": self.index, "_id": document["id"], "_source": document}

    async def bulk_index(self, documents: Iterable[Dict[str, Any]]) -> int:
        actions = list(self._iter_actions(documents))
        if not actions:
            return 0
        indexed, _ = await asyncio.to_thread(helpers.bulk, self.es, actions)
        return indexed

    async def ping(self) -> bool:
        try:
            return bool(await asyncio.to_thread(self.es.ping))
        except Exception as exc:  # pragma: no cover - health probe only
            logger.error("Elasticsearch connection failed: %s", exc)
            return False


def get_engine() -> ElasticsearchEngine:
    return ElasticsearchEngine(get_client(), settings.es_index)
