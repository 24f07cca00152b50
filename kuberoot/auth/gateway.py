"""Auth gateway: resolves a presented API key to a Tenant.

Two gateways exist:
    APIKeyGateway -- hashes the key and validates it against a durable store.
    LocalGateway  -- trusted mode; every caller is the placeholder tenant.

``select_gateway`` is the only place that picks one, and it never returns a
LocalGateway for a durable store.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from kuberoot.auth.keys import hash_api_key
from kuberoot.errors import InvalidAPIKeyError
from kuberoot.models.tenancy import LOCAL_TENANT_ID, Tenant
from kuberoot.observability.logging import get_logger
from kuberoot.store.base import DiagnosisStore

_logger = get_logger("auth.gateway")


class TenantGateway(Protocol):
    trusted: bool

    async def resolve(self, api_key: str | None) -> Tenant: ...


class APIKeyGateway:
    """Validates API keys against the store.

    Raises:
        InvalidAPIKeyError -- key missing, unknown or revoked (not distinguished).
        StoreError         -- the store failed.
        TimeoutError       -- validation exceeded ``timeout`` seconds.
    """

    trusted = False

    def __init__(self, store: DiagnosisStore, timeout: float = 5.0) -> None:
        self._store = store
        self._timeout = timeout

    async def resolve(self, api_key: str | None) -> Tenant:
        api_key = (api_key or "").strip()
        if not api_key:
            raise InvalidAPIKeyError("missing X-API-Key header")

        key_hash = hash_api_key(api_key)
        tenant_id = await asyncio.wait_for(self._store.validate_api_key(key_hash), timeout=self._timeout)
        if not (tenant_id or "").strip():
            _logger.warning("api_key_without_tenant")
            raise InvalidAPIKeyError("API key is bound to no tenant")
        return Tenant(tenant_id)


class LocalGateway:
    """Trusted mode for deployments without a database."""

    trusted = True

    async def resolve(self, api_key: str | None) -> Tenant:
        return Tenant(LOCAL_TENANT_ID)


def select_gateway(store: DiagnosisStore, timeout: float = 5.0) -> TenantGateway:
    if store.durable:
        _logger.info("API key authentication enabled")
        return APIKeyGateway(store, timeout=timeout)
    _logger.info("API key authentication disabled (local mode)")
    return LocalGateway()
