"""Rule and diagnosis data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class Confidence(StrEnum):
    """Confidence tier attached to a diagnosis."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Rule:
    """Static mapping from a failure type to its likely cause and fix.

    ``evidence_keywords`` are matched case-insensitively against correlated
    event text to raise confidence by one tier.
    """

    failure_type: str
    likely_cause: str
    suggested_fix: str
    confidence: Confidence
    evidence_keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class Diagnosis:
    """Persisted, tenant-scoped result of applying a rule to a failure record."""

    tenant_id: str
    cluster_id: str
    pod_name: str
    namespace: str
    failure_type: str
    likely_cause: str
    suggested_fix: str
    confidence: Confidence
    timestamp: datetime  # UTC, stamped by the engine
    events: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("Diagnosis requires a tenant id")
        if not self.cluster_id:
            raise ValueError("Diagnosis requires a cluster id")
