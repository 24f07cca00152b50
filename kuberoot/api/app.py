"""FastAPI application factory for Kuberoot.

Usage::

    from kuberoot.api.app import create_app

    app = create_app(
        store=store,
        rules=default_rule_table(),
        cluster_id=config.cluster_id,
    )

The factory is designed for use by both the production bootstrap
(``kuberoot.app``) and unit tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kuberoot.api.errors import APIError
from kuberoot.api.routes import health_router, router
from kuberoot.api.schemas import ErrorResponse
from kuberoot.auth.gateway import TenantGateway, select_gateway
from kuberoot.collector.source import ClusterStateSource
from kuberoot.rules.engine import DiagnosisEngine
from kuberoot.rules.table import RuleTable, default_rule_table
from kuberoot.store.base import DiagnosisStore

_log = structlog.get_logger(component="api.app")

_HTTP_ERROR_CODES = {
    400: "INVALID_PAYLOAD",
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def create_app(
    store: DiagnosisStore,
    rules: RuleTable | None = None,
    gateway: TenantGateway | None = None,
    cluster_id: str = "local",
    store_timeout: float = 15.0,
    auth_timeout: float = 5.0,
    state_source: ClusterStateSource | None = None,
) -> FastAPI:
    """Create and configure the Kuberoot FastAPI application.

    Args:
        store:         DiagnosisStore (PostgresStore or NoopStore).
        rules:         Rule table for the diagnosis engine.  Defaults to the
                       built-in table.
        gateway:       Tenant gateway.  Defaults to ``select_gateway(store)``.
                       A trusted gateway is rejected when the store is durable.
        cluster_id:    Cluster id of the cluster this server runs in; default
                       scope for history queries and live scans.
        store_timeout: Seconds allowed for each persistence/history call.
        auth_timeout:  Seconds allowed for API key validation.
        state_source:  Optional ClusterStateSource enabling ``GET /diagnose``.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from kuberoot import __version__

    if gateway is None:
        gateway = select_gateway(store, timeout=auth_timeout)
    elif gateway.trusted and store.durable:
        raise ValueError("trusted (local) authentication cannot be used with a durable store")

    app = FastAPI(
        title="Kuberoot",
        summary="Tenant-scoped Kubernetes failure diagnosis",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.store = store
    app.state.gateway = gateway
    app.state.engine = DiagnosisEngine(rules if rules is not None else default_rule_table())
    app.state.cluster_id = cluster_id or "local"
    app.state.store_timeout = store_timeout
    app.state.state_source = state_source

    app.include_router(health_router)
    app.include_router(router)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(APIError)
    async def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.error, detail=exc.detail).model_dump(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Framework-raised HTTP errors (unknown route, undecodable body)."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=_HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
                detail=str(exc.detail),
            ).model_dump(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map request validation errors (body or query) to a 400."""
        errors = exc.errors()
        location = ""
        detail = "invalid request"
        if errors:
            locs = errors[0].get("loc", ())
            location = str(locs[0]) if locs else ""
            field = ".".join(str(part) for part in locs[1:])
            msg = str(errors[0].get("msg", ""))
            detail = f"{field}: {msg}" if field else msg

        if location == "query":
            error_code = "INVALID_QUERY"
        else:
            error_code = "INVALID_PAYLOAD"
            detail = f"invalid payload: {detail}"

        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=error_code, detail=detail).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app


def describe_app(app: FastAPI) -> dict[str, Any]:
    """Summarise the wiring of an app (logged once at startup)."""
    return {
        "cluster_id": app.state.cluster_id,
        "durable_store": bool(app.state.store.durable),
        "trusted_auth": bool(app.state.gateway.trusted),
        "rules": sorted(app.state.engine.rules),
        "live_scan": app.state.state_source is not None,
    }
