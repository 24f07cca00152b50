"""No-op store used when no database is configured (local mode)."""

from __future__ import annotations

from collections.abc import Sequence

from kuberoot.models.diagnosis import Diagnosis
from kuberoot.models.tenancy import LOCAL_TENANT_ID, HistoryFilter
from kuberoot.observability.logging import get_logger

_logger = get_logger("store.noop")


class NoopStore:
    """Accepts every batch, remembers nothing, trusts every caller."""

    durable = False

    async def save_diagnoses(self, tenant_id: str, cluster_id: str, diagnoses: Sequence[Diagnosis]) -> None:
        _logger.debug("noop_save", tenant_id=tenant_id, cluster_id=cluster_id, diagnoses=len(diagnoses))

    async def list_diagnoses(
        self,
        tenant_id: str,
        cluster_id: str,
        history_filter: HistoryFilter,
    ) -> list[Diagnosis]:
        return []

    async def validate_api_key(self, key_hash: str) -> str:
        return LOCAL_TENANT_ID

    async def close(self) -> None:
        return None
