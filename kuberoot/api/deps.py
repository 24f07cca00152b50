"""FastAPI dependencies for tenant resolution."""

from __future__ import annotations

from fastapi import Header, Request

from kuberoot.api.errors import APIError, unauthorized
from kuberoot.errors import InvalidAPIKeyError, StoreError
from kuberoot.models.tenancy import Tenant
from kuberoot.observability.logging import get_logger

_log = get_logger("api.deps")


async def require_tenant(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> Tenant:
    """Resolve the caller's tenant through the configured gateway.

    Every route that touches tenant data depends on this; the resolved
    Tenant is passed explicitly to the engine and the store from here on.
    """
    gateway = request.app.state.gateway
    try:
        return await gateway.resolve(x_api_key)
    except InvalidAPIKeyError as exc:
        if not (x_api_key or "").strip():
            raise unauthorized("missing X-API-Key header") from exc
        _log.info("api_key_rejected", path=request.url.path)
        raise unauthorized("invalid API key") from exc
    except TimeoutError as exc:
        _log.error("api_key_validation_timed_out", path=request.url.path)
        raise APIError(500, "AUTH_TIMEOUT", "API key validation timed out") from exc
    except StoreError as exc:
        _log.error("api_key_validation_failed", path=request.url.path, error=str(exc))
        raise APIError(500, "STORE_ERROR", "failed to validate API key") from exc
