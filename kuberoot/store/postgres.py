"""PostgreSQL-backed DiagnosisStore (asyncpg).

Every query carries ``tenant_id`` and ``cluster_id`` predicates; there is no
code path that reads diagnoses without both.  A batch is written in a single
transaction: the cluster upsert and every diagnosis insert commit together
or not at all (including on task cancellation).
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import asyncpg

from kuberoot.errors import InvalidAPIKeyError, StoreError
from kuberoot.models.diagnosis import Confidence, Diagnosis
from kuberoot.models.tenancy import APIKeyRecord, HistoryFilter
from kuberoot.observability.logging import get_logger
from kuberoot.store.base import clamp_limit

_logger = get_logger("store.postgres")

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

SCHEMA = """
CREATE TABLE IF NOT EXISTS clusters (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS api_keys (
    id BIGSERIAL PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    key_hash TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    active BOOLEAN NOT NULL DEFAULT true,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_used_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS idx_api_keys_key_hash
    ON api_keys(key_hash) WHERE active = true;

CREATE TABLE IF NOT EXISTS diagnoses (
    id BIGSERIAL PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    cluster_id TEXT NOT NULL REFERENCES clusters(id) ON DELETE CASCADE,
    pod_name TEXT NOT NULL,
    namespace TEXT NOT NULL,
    failure_type TEXT NOT NULL,
    likely_cause TEXT NOT NULL,
    suggested_fix TEXT NOT NULL,
    confidence TEXT NOT NULL,
    events JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_diagnoses_tenant_cluster_created_at
    ON diagnoses(tenant_id, cluster_id, created_at DESC);
"""

_SELECT_CLUSTER_TENANT = "SELECT tenant_id FROM clusters WHERE id = $1 FOR UPDATE"

_UPSERT_CLUSTER = """
INSERT INTO clusters (id, tenant_id, updated_at)
VALUES ($1, $2, NOW())
ON CONFLICT (id)
DO UPDATE SET tenant_id = EXCLUDED.tenant_id, updated_at = NOW()
"""

_INSERT_DIAGNOSIS = """
INSERT INTO diagnoses (
    tenant_id, cluster_id, pod_name, namespace, failure_type,
    likely_cause, suggested_fix, confidence, events, created_at
) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb, $10)
"""

_VALIDATE_API_KEY = """
UPDATE api_keys
SET last_used_at = NOW()
WHERE key_hash = $1 AND active = true
RETURNING tenant_id
"""

_INSERT_API_KEY = """
INSERT INTO api_keys (tenant_id, key_hash, name, active, created_at)
VALUES ($1, $2, $3, true, NOW())
RETURNING tenant_id, key_hash, name, active, created_at, last_used_at
"""

_DEACTIVATE_API_KEY = "UPDATE api_keys SET active = false WHERE key_hash = $1 AND active = true"


def build_history_query(tenant_id: str, cluster_id: str, history_filter: HistoryFilter) -> tuple[str, list[Any]]:
    """Build the parameterised history SELECT.

    Tenant and cluster predicates come first and are unconditional.
    """
    if not tenant_id or not cluster_id:
        raise ValueError("tenant_id and cluster_id are required for history queries")

    args: list[Any] = [tenant_id, cluster_id]
    where = ["tenant_id = $1", "cluster_id = $2"]

    if history_filter.failure_type:
        args.append(history_filter.failure_type)
        where.append(f"failure_type = ${len(args)}")
    if history_filter.namespace:
        args.append(history_filter.namespace)
        where.append(f"namespace = ${len(args)}")
    if history_filter.since is not None:
        args.append(history_filter.since)
        where.append(f"created_at >= ${len(args)}")
    if history_filter.until is not None:
        args.append(history_filter.until)
        where.append(f"created_at <= ${len(args)}")

    args.append(clamp_limit(history_filter.limit))
    query = (
        "SELECT tenant_id, cluster_id, pod_name, namespace, failure_type, "
        "likely_cause, suggested_fix, confidence, events, created_at "
        "FROM diagnoses "
        f"WHERE {' AND '.join(where)} "
        "ORDER BY created_at DESC, id DESC "
        f"LIMIT ${len(args)}"
    )
    return query, args


def _row_to_diagnosis(row: Any) -> Diagnosis:
    events = row["events"]
    if isinstance(events, str):
        events = json.loads(events)
    return Diagnosis(
        tenant_id=row["tenant_id"],
        cluster_id=row["cluster_id"],
        pod_name=row["pod_name"],
        namespace=row["namespace"],
        failure_type=row["failure_type"],
        likely_cause=row["likely_cause"],
        suggested_fix=row["suggested_fix"],
        confidence=Confidence(row["confidence"]),
        events=tuple(events or ()),
        timestamp=row["created_at"],
    )


def _diagnosis_args(tenant_id: str, cluster_id: str, diagnosis: Diagnosis) -> tuple[Any, ...]:
    return (
        tenant_id,
        cluster_id,
        diagnosis.pod_name,
        diagnosis.namespace,
        diagnosis.failure_type,
        diagnosis.likely_cause,
        diagnosis.suggested_fix,
        diagnosis.confidence.value,
        json.dumps(list(diagnosis.events)),
        diagnosis.timestamp,
    )


class PostgresStore:
    """Durable store over an asyncpg connection pool."""

    durable = True

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    @classmethod
    async def connect(cls, database_url: str, min_size: int = 1, max_size: int = 10) -> PostgresStore:
        """Open the pool and apply the schema."""
        try:
            pool = await asyncpg.create_pool(database_url, min_size=min_size, max_size=max_size)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"open postgres: {exc}") from exc
        store = cls(pool)
        try:
            await store.ensure_schema()
        except StoreError:
            await pool.close()
            raise
        return store

    async def ensure_schema(self) -> None:
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(SCHEMA)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"apply schema: {exc}") from exc

    async def save_diagnoses(self, tenant_id: str, cluster_id: str, diagnoses: Sequence[Diagnosis]) -> None:
        if not tenant_id or not cluster_id:
            raise ValueError("tenant_id and cluster_id are required")
        try:
            async with self._pool.acquire() as conn, conn.transaction():
                previous_tenant = await conn.fetchval(_SELECT_CLUSTER_TENANT, cluster_id)
                await conn.execute(_UPSERT_CLUSTER, cluster_id, tenant_id)
                if previous_tenant is not None and previous_tenant != tenant_id:
                    # Last writer wins on the tenant binding.
                    _logger.warning(
                        "cluster_tenant_rebound",
                        cluster_id=cluster_id,
                        previous_tenant_id=previous_tenant,
                        tenant_id=tenant_id,
                    )
                if diagnoses:
                    await conn.executemany(
                        _INSERT_DIAGNOSIS,
                        [_diagnosis_args(tenant_id, cluster_id, d) for d in diagnoses],
                    )
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"save diagnoses: {exc}") from exc

    async def list_diagnoses(
        self,
        tenant_id: str,
        cluster_id: str,
        history_filter: HistoryFilter,
    ) -> list[Diagnosis]:
        query, args = build_history_query(tenant_id, cluster_id, history_filter)
        try:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"query diagnoses history: {exc}") from exc
        try:
            return [_row_to_diagnosis(row) for row in rows]
        except (ValueError, TypeError) as exc:
            raise StoreError(f"decode diagnosis history row: {exc}") from exc

    async def validate_api_key(self, key_hash: str) -> str:
        try:
            async with self._pool.acquire() as conn:
                tenant_id = await conn.fetchval(_VALIDATE_API_KEY, key_hash)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"validate API key: {exc}") from exc
        if tenant_id is None:
            raise InvalidAPIKeyError("invalid or inactive API key")
        return str(tenant_id)

    # ------------------------------------------------------------------
    # Administrative operations (not on the request path)
    # ------------------------------------------------------------------

    async def create_api_key(self, tenant_id: str, key_hash: str, name: str) -> APIKeyRecord:
        if not tenant_id.strip():
            raise ValueError("tenant_id is required")
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(_INSERT_API_KEY, tenant_id, key_hash, name)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"insert API key: {exc}") from exc
        if row is None:
            raise StoreError("insert API key returned no row")
        return APIKeyRecord(
            tenant_id=row["tenant_id"],
            key_hash=row["key_hash"],
            name=row["name"],
            active=row["active"],
            created_at=row["created_at"],
            last_used_at=row["last_used_at"],
        )

    async def deactivate_api_key(self, key_hash: str) -> bool:
        """Flip ``active`` to false.  Returns False when no active key matched."""
        try:
            async with self._pool.acquire() as conn:
                status = await conn.execute(_DEACTIVATE_API_KEY, key_hash)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"deactivate API key: {exc}") from exc
        return status.endswith(" 1")

    async def register_cluster(self, tenant_id: str, cluster_id: str) -> None:
        if not tenant_id.strip() or not cluster_id.strip():
            raise ValueError("tenant_id and cluster_id are required")
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(_UPSERT_CLUSTER, cluster_id, tenant_id)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"register cluster: {exc}") from exc

    async def close(self) -> None:
        await self._pool.close()

