"""DiagnosisStore capability shared by the durable and no-op stores."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from kuberoot.models.diagnosis import Diagnosis
from kuberoot.models.tenancy import HistoryFilter

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200


def clamp_limit(limit: int) -> int:
    """Non-positive limits fall back to the default; large ones are capped."""
    if limit <= 0:
        return DEFAULT_HISTORY_LIMIT
    return min(limit, MAX_HISTORY_LIMIT)


@runtime_checkable
class DiagnosisStore(Protocol):
    """Tenant-scoped persistence of diagnoses and credential validation.

    ``durable`` is True only for stores backed by a real database; the auth
    gateway refuses trusted (local) mode for durable stores.

    Errors:
        StoreError          -- any driver, connection or transaction failure.
        InvalidAPIKeyError  -- validate_api_key found no active credential.
    """

    durable: bool

    async def save_diagnoses(self, tenant_id: str, cluster_id: str, diagnoses: Sequence[Diagnosis]) -> None: ...

    async def list_diagnoses(
        self,
        tenant_id: str,
        cluster_id: str,
        history_filter: HistoryFilter,
    ) -> list[Diagnosis]: ...

    async def validate_api_key(self, key_hash: str) -> str: ...

    async def close(self) -> None: ...
