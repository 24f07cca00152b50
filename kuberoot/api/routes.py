"""Route handlers for the Kuberoot REST API.

Endpoints:
    GET  /health                  -- liveness probe (no auth, no store access)
    POST /api/v1/agent/report     -- ingest one batch from a collector agent
    GET  /diagnose/history        -- filtered diagnosis history (alias /api/v1/diagnoses)
    GET  /diagnose                -- scan the local cluster, diagnose and persist
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Sequence
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request

from kuberoot.api.deps import require_tenant
from kuberoot.api.errors import APIError, bad_request
from kuberoot.api.schemas import (
    AgentReport,
    AgentReportResponse,
    DiagnoseResponse,
    DiagnosisOut,
    HealthResponse,
    HistoryResponse,
)
from kuberoot.collector.normalizer import collect_failures
from kuberoot.errors import CollectorError, StoreError
from kuberoot.models.diagnosis import Diagnosis
from kuberoot.models.tenancy import HistoryFilter, Tenant
from kuberoot.observability.logging import get_logger
from kuberoot.store.base import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT

_log = get_logger("api.routes")

health_router = APIRouter()
router = APIRouter(dependencies=[Depends(require_tenant)])

_LIMIT_RE = re.compile(r"[+-]?[0-9]{1,18}")
_RFC3339_RE = re.compile(
    r"(?P<stamp>[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2})"
    r"(?:\.(?P<fraction>[0-9]+))?"
    r"(?P<offset>Z|[+-][0-9]{2}:[0-9]{2})"
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_rfc3339(name: str, raw: str | None) -> datetime | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    match = _RFC3339_RE.fullmatch(raw)
    if match is None:
        raise bad_request(f"invalid {name} (use RFC3339)")
    # datetime carries microseconds; finer fractions are truncated.
    fraction = (match["fraction"] or "0")[:6].ljust(6, "0")
    offset = "+00:00" if match["offset"] == "Z" else match["offset"]
    try:
        return datetime.fromisoformat(f"{match['stamp']}.{fraction}{offset}")
    except ValueError as exc:
        raise bad_request(f"invalid {name} (use RFC3339)") from exc


def build_history_filter(
    limit: str | None,
    failure_type: str | None,
    namespace: str | None,
    since: str | None,
    until: str | None,
) -> HistoryFilter:
    """Validate history query parameters.  Raises APIError(400) on bad input."""
    effective_limit = DEFAULT_HISTORY_LIMIT
    if limit:
        if _LIMIT_RE.fullmatch(limit) is None or int(limit) <= 0:
            raise bad_request("invalid limit")
        effective_limit = min(int(limit), MAX_HISTORY_LIMIT)

    since_dt = _parse_rfc3339("since", since)
    until_dt = _parse_rfc3339("until", until)
    if since_dt is not None and until_dt is not None and since_dt > until_dt:
        raise bad_request("since must be earlier than or equal to until")

    return HistoryFilter(
        limit=effective_limit,
        failure_type=(failure_type or "").strip(),
        namespace=(namespace or "").strip(),
        since=since_dt,
        until=until_dt,
    )


async def _persist(request: Request, tenant: Tenant, cluster_id: str, diagnoses: Sequence[Diagnosis]) -> None:
    store = request.app.state.store
    timeout = request.app.state.store_timeout
    try:
        await asyncio.wait_for(
            store.save_diagnoses(tenant.tenant_id, cluster_id, diagnoses),
            timeout=timeout,
        )
    except TimeoutError as exc:
        _log.error("save_diagnoses_timed_out", tenant_id=tenant.tenant_id, cluster_id=cluster_id, timeout=timeout)
        raise APIError(500, "STORE_TIMEOUT", "timed out storing diagnoses") from exc
    except StoreError as exc:
        _log.error("save_diagnoses_failed", tenant_id=tenant.tenant_id, cluster_id=cluster_id, error=str(exc))
        raise APIError(500, "STORE_ERROR", "failed to store diagnoses") from exc


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@health_router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    return HealthResponse(status="ok", cluster_id=request.app.state.cluster_id, ready=True)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post("/api/v1/agent/report", response_model=AgentReportResponse)
async def agent_report(
    report: AgentReport,
    request: Request,
    tenant: Tenant = Depends(require_tenant),
) -> AgentReportResponse:
    """Diagnose and persist one batch pushed by a collector agent."""
    engine = request.app.state.engine
    diagnoses = engine.diagnose(tenant, report.cluster_id, [f.to_record() for f in report.failures])
    _log.info(
        "agent_report_received",
        tenant_id=tenant.tenant_id,
        cluster_id=report.cluster_id,
        failures=len(report.failures),
        diagnoses=len(diagnoses),
    )
    for diagnosis in diagnoses:
        _log.debug(
            "agent_diagnosis",
            namespace=diagnosis.namespace,
            pod=diagnosis.pod_name,
            failure_type=diagnosis.failure_type,
            confidence=diagnosis.confidence.value,
        )

    await _persist(request, tenant, report.cluster_id, diagnoses)

    return AgentReportResponse(
        status="accepted",
        id=report.cluster_id,
        message=f"processed {len(diagnoses)} diagnoses",
    )


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@router.get("/diagnose/history", response_model=HistoryResponse)
@router.get("/api/v1/diagnoses", response_model=HistoryResponse)
async def diagnose_history(
    request: Request,
    tenant: Tenant = Depends(require_tenant),
    limit: str | None = Query(default=None),
    failure_type: str | None = Query(default=None, alias="failureType"),
    namespace: str | None = Query(default=None),
    since: str | None = Query(default=None),
    until: str | None = Query(default=None),
    cluster_id: str | None = Query(default=None, alias="clusterId"),
) -> HistoryResponse:
    history_filter = build_history_filter(limit, failure_type, namespace, since, until)
    cluster = (cluster_id or "").strip() or request.app.state.cluster_id

    store = request.app.state.store
    timeout = request.app.state.store_timeout
    try:
        history = await asyncio.wait_for(
            store.list_diagnoses(tenant.tenant_id, cluster, history_filter),
            timeout=timeout,
        )
    except TimeoutError as exc:
        _log.error("list_diagnoses_timed_out", tenant_id=tenant.tenant_id, cluster_id=cluster, timeout=timeout)
        raise APIError(500, "STORE_TIMEOUT", "timed out loading diagnosis history") from exc
    except StoreError as exc:
        _log.error("list_diagnoses_failed", tenant_id=tenant.tenant_id, cluster_id=cluster, error=str(exc))
        raise APIError(500, "STORE_ERROR", "failed to load diagnosis history") from exc

    return HistoryResponse(
        cluster=cluster,
        count=len(history),
        items=[DiagnosisOut.from_diagnosis(d) for d in history],
    )


# ---------------------------------------------------------------------------
# Live scan
# ---------------------------------------------------------------------------


@router.get("/diagnose", response_model=DiagnoseResponse)
async def diagnose(request: Request, tenant: Tenant = Depends(require_tenant)) -> DiagnoseResponse:
    """Scan the cluster this server runs in, then diagnose and persist."""
    source = request.app.state.state_source
    if source is None:
        raise APIError(503, "SCANNER_UNAVAILABLE", "no cluster connection configured")

    cluster = request.app.state.cluster_id
    timeout = request.app.state.store_timeout
    try:
        failures = await asyncio.wait_for(collect_failures(source), timeout=timeout)
    except TimeoutError as exc:
        _log.error("cluster_scan_timed_out", cluster_id=cluster, timeout=timeout)
        raise APIError(500, "CLUSTER_SCAN_FAILED", "timed out inspecting cluster") from exc
    except CollectorError as exc:
        _log.error("cluster_scan_failed", cluster_id=cluster, error=str(exc))
        raise APIError(500, "CLUSTER_SCAN_FAILED", "failed to inspect cluster") from exc

    diagnoses = request.app.state.engine.diagnose(tenant, cluster, failures)
    await _persist(request, tenant, cluster, diagnoses)

    return DiagnoseResponse(
        cluster=cluster,
        failures=[DiagnosisOut.from_diagnosis(d) for d in diagnoses],
    )
