"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "products")
    mapping_path: str = _get_env("MAPPING_PATH", str(PACKAGE_DIR / "product-mapping.json"))
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    redis_password: str = _get_env("REDIS_PASSWORD", "")
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "3600"))
    database_url: str = _get_env("DATABASE_URL", "sqlite:///catalog.db")
    suggestion_threshold: int = int(_get_env("SUGGESTION_THRESHOLD", "5"))
    ensure_index_on_startup: bool = _get_env("ENSURE_INDEX_ON_STARTUP", "true").lower() in {"1", "true", "yes"}
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
