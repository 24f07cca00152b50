"""Tenant store for Kuberoot.

Two implementations of the DiagnosisStore capability:
    PostgresStore -- durable, asyncpg-backed; enables API key authentication.
    NoopStore     -- local mode; nothing is persisted.

``build_store`` is the single place where the variant is chosen.
"""

from __future__ import annotations

from kuberoot.models.config import StoreConfig
from kuberoot.observability.logging import get_logger
from kuberoot.store.base import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT, DiagnosisStore, clamp_limit
from kuberoot.store.noop import NoopStore
from kuberoot.store.postgres import PostgresStore

_logger = get_logger("store")

__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DiagnosisStore",
    "MAX_HISTORY_LIMIT",
    "NoopStore",
    "PostgresStore",
    "build_store",
    "clamp_limit",
]


async def build_store(config: StoreConfig) -> DiagnosisStore:
    """Return a PostgresStore when a database URL is configured, else a NoopStore."""
    if not config.database_url:
        _logger.info("postgres persistence disabled (DATABASE_URL not set)")
        return NoopStore()
    store = await PostgresStore.connect(
        config.database_url,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
    )
    _logger.info("postgres persistence enabled")
    return store
