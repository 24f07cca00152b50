"""Core data structures for Kuberoot."""

from kuberoot.models.config import AgentConfig, KuberootConfig
from kuberoot.models.diagnosis import Confidence, Diagnosis, Rule
from kuberoot.models.failures import MAX_EVENTS, FailureRecord, FailureType
from kuberoot.models.tenancy import LOCAL_TENANT_ID, APIKeyRecord, HistoryFilter, Tenant

__all__ = [
    "APIKeyRecord",
    "AgentConfig",
    "Confidence",
    "Diagnosis",
    "FailureRecord",
    "FailureType",
    "HistoryFilter",
    "KuberootConfig",
    "LOCAL_TENANT_ID",
    "MAX_EVENTS",
    "Rule",
    "Tenant",
]
