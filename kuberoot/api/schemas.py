"""Wire schemas for the Kuberoot REST API and the agent push protocol.

Field names are snake_case in Python and camelCase on the wire.  The agent
(``kuberoot.collector.agent``) serialises its reports with the same models
the server validates them with.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from kuberoot.models.diagnosis import Confidence, Diagnosis
from kuberoot.models.failures import MAX_EVENTS, FailureRecord


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FailurePayload(_WireModel):
    """A FailureRecord as carried in an agent report."""

    namespace: str
    name: str
    container: str = ""
    types: list[str] = Field(min_length=1)
    message: str = ""
    events: list[str] = Field(default_factory=list, max_length=MAX_EVENTS)

    @classmethod
    def from_record(cls, record: FailureRecord) -> FailurePayload:
        return cls(
            namespace=record.namespace,
            name=record.name,
            container=record.container,
            types=list(record.types),
            message=record.message,
            events=list(record.events),
        )

    def to_record(self) -> FailureRecord:
        return FailureRecord(
            namespace=self.namespace,
            name=self.name,
            container=self.container,
            types=tuple(self.types),
            message=self.message,
            events=tuple(self.events),
        )


class AgentReport(_WireModel):
    """Body of ``POST /api/v1/agent/report``.

    ``timestamp`` is the collector's clock and is advisory only.
    """

    cluster_id: str
    timestamp: datetime | None = None
    failures: list[FailurePayload] = Field(default_factory=list)

    @field_validator("cluster_id")
    @classmethod
    def _cluster_id_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("clusterId required")
        return value


class AgentReportResponse(BaseModel):
    """Acknowledgement for an accepted report.  No diagnoses are echoed."""

    status: str = "accepted"
    id: str
    message: str = ""


class DiagnosisOut(_WireModel):
    tenant_id: str
    cluster_id: str
    pod_name: str
    namespace: str
    failure_type: str
    likely_cause: str
    suggested_fix: str
    confidence: Confidence
    events: list[str]
    timestamp: datetime

    @classmethod
    def from_diagnosis(cls, diagnosis: Diagnosis) -> DiagnosisOut:
        return cls(
            tenant_id=diagnosis.tenant_id,
            cluster_id=diagnosis.cluster_id,
            pod_name=diagnosis.pod_name,
            namespace=diagnosis.namespace,
            failure_type=diagnosis.failure_type,
            likely_cause=diagnosis.likely_cause,
            suggested_fix=diagnosis.suggested_fix,
            confidence=diagnosis.confidence,
            events=list(diagnosis.events),
            timestamp=diagnosis.timestamp,
        )


class HistoryResponse(BaseModel):
    cluster: str
    count: int
    items: list[DiagnosisOut]


class DiagnoseResponse(BaseModel):
    cluster: str
    failures: list[DiagnosisOut]


class HealthResponse(_WireModel):
    status: str = "ok"
    cluster_id: str = ""
    ready: bool = True


class ErrorResponse(BaseModel):
    """Envelope for every 4xx/5xx response."""

    error: str
    detail: str
