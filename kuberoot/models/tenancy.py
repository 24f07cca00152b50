"""Tenant identity and credential records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

LOCAL_TENANT_ID = "local-org"


@dataclass(frozen=True)
class Tenant:
    """Resolved caller identity, threaded explicitly from the auth gateway."""

    tenant_id: str

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("Tenant id must not be empty")


@dataclass(frozen=True)
class APIKeyRecord:
    """Stored credential.  Only the digest of the key is ever persisted."""

    tenant_id: str
    key_hash: str
    name: str
    active: bool = True
    created_at: datetime | None = None
    last_used_at: datetime | None = None


@dataclass(frozen=True)
class HistoryFilter:
    """Optional predicates for a diagnosis history query."""

    limit: int = 50
    failure_type: str = ""
    namespace: str = ""
    since: datetime | None = None
    until: datetime | None = None
