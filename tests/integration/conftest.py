"""Shared fixtures for Kuberoot integration tests.

Provides realistic pod/event fixtures for pipeline tests and, when
``KUBEROOT_TEST_DATABASE_URL`` points at a disposable PostgreSQL database, a
PostgresStore with a clean schema for every test.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from kuberoot.auth.keys import hash_api_key
from kuberoot.store.postgres import PostgresStore

_NOW = datetime.now(UTC)
_5_MIN_AGO = _NOW - timedelta(minutes=5)
_1H_AGO = _NOW - timedelta(hours=1)

TEST_DATABASE_URL = os.environ.get("KUBEROOT_TEST_DATABASE_URL", "")


# ---------------------------------------------------------------------------
# Cluster state factories
# ---------------------------------------------------------------------------


def make_pod(name: str, namespace: str = "default", **status) -> dict:
    """Create a raw pod object as returned by the Kubernetes API."""
    return {"metadata": {"name": name, "namespace": namespace}, "status": status}


def make_k8s_event(reason: str, message: str, last_seen: datetime) -> dict:
    """Create a raw core/v1 Event."""
    return {
        "reason": reason,
        "message": message,
        "lastTimestamp": last_seen.isoformat(),
        "metadata": {"creationTimestamp": _1H_AGO.isoformat()},
    }


def _crashing_pod() -> dict:
    return make_pod(
        "checkout-5d8f7-abcde",
        "shop",
        phase="Running",
        containerStatuses=[
            {
                "name": "checkout",
                "state": {"waiting": {"reason": "CrashLoopBackOff", "message": "back-off 2m40s restarting"}},
                "lastState": {"terminated": {"reason": "Error", "exitCode": 1}},
            }
        ],
    )


def _oom_pod() -> dict:
    return make_pod(
        "batch-7c9d-xyz12",
        "jobs",
        phase="Running",
        containerStatuses=[{"name": "batch", "state": {"terminated": {"reason": "OOMKilled", "exitCode": 137}}}],
    )


def _pending_pod() -> dict:
    return make_pod(
        "gpu-trainer-0",
        "ml",
        phase="Pending",
        conditions=[
            {
                "type": "PodScheduled",
                "status": "False",
                "reason": "Unschedulable",
                "message": "0/4 nodes are available: 4 Insufficient nvidia.com/gpu.",
            }
        ],
    )


def _healthy_pod() -> dict:
    return make_pod(
        "frontend-0",
        "shop",
        phase="Running",
        containerStatuses=[{"name": "web", "state": {"running": {"startedAt": _1H_AGO.isoformat()}}}],
    )


_EVENTS = {
    ("shop", "checkout-5d8f7-abcde"): [
        make_k8s_event("Pulled", "Container image already present on machine", _1H_AGO),
        make_k8s_event("BackOff", "Back-off restarting failed container", _5_MIN_AGO),
        make_k8s_event("BackOff", "Back-off restarting failed container", _NOW),
        make_k8s_event("Started", "Started container checkout", _1H_AGO + timedelta(minutes=1)),
        make_k8s_event("Created", "Created container checkout", _1H_AGO + timedelta(seconds=30)),
    ],
    ("jobs", "batch-7c9d-xyz12"): [],
    ("ml", "gpu-trainer-0"): [
        make_k8s_event("FailedScheduling", "0/4 nodes are available", _5_MIN_AGO),
    ],
}


@pytest.fixture
def cluster_source() -> MagicMock:
    """A ClusterStateSource over a small cluster with three failing pods."""

    async def _events(namespace: str, pod_name: str) -> list[dict]:
        return list(_EVENTS.get((namespace, pod_name), []))

    source = MagicMock()
    source.list_pods = AsyncMock(return_value=[_crashing_pod(), _healthy_pod(), _oom_pod(), _pending_pod()])
    source.list_pod_events = AsyncMock(side_effect=_events)
    return source


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------


@pytest.fixture
async def pg_store():
    """A PostgresStore on an emptied schema.  Skips without a test database."""
    if not TEST_DATABASE_URL:
        pytest.skip("KUBEROOT_TEST_DATABASE_URL not set")
    store = await PostgresStore.connect(TEST_DATABASE_URL, min_size=1, max_size=4)
    async with store._pool.acquire() as conn:
        await conn.execute("TRUNCATE diagnoses, clusters, api_keys RESTART IDENTITY")
    try:
        yield store
    finally:
        await store.close()


@pytest.fixture
async def tenant_keys(pg_store: PostgresStore) -> dict[str, str]:
    """Two active API keys, one per tenant.  Returns tenant_id -> raw key."""
    keys = {"org-a": "kr_" + "a1" * 32, "org-b": "kr_" + "b2" * 32}
    for tenant_id, key in keys.items():
        await pg_store.create_api_key(tenant_id, hash_api_key(key), f"{tenant_id}-agent")
    return keys
