"""Index creation and maintenance helpers."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import BadRequestError, NotFoundError

from .config import settings

logger = logging.getLogger(__name__)


def load_mapping(mapping_path: Path) -> dict:
    """Read the index settings and field mapping shipped with the package."""
    with mapping_path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


async def ensure_index(es: Elasticsearch, index: str | None = None) -> bool:
    """Create the products index with the autocomplete analyzers if it is missing.

    Safe to run from several processes at startup: an index created by someone
    else between the existence check and the create call counts as success.
    Returns ``True`` only when this call created the index.
    """

    index = index or settings.es_index
    exists = await asyncio.to_thread(es.indices.exists, index=index)
    if exists:
        logger.info("Index %s already exists", index)
        return False

    mapping_path = Path(settings.mapping_path)
    body = load_mapping(mapping_path)
    logger.info("Creating index %s using %s", index, mapping_path)
    try:
        await asyncio.to_thread(
            es.indices.create,
            index=index,
            settings=body.get("settings"),
            mappings=body.get("mappings"),
        )
    except BadRequestError as exc:
        if getattr(exc, "error", "") == "resource_already_exists_exception":
            logger.info("Index %s already exists", index)
            return False
        logger.exception("Failed to create index: %s", exc)
        raise
    logger.info("Index %s created", index)
    return True


async def drop_index(es: Elasticsearch, index: str | None = None) -> None:
    try:
        await asyncio.to_thread(es.indices.delete, index=index or settings.es_index)
    except NotFoundError:
        return
