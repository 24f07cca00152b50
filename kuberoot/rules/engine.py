"""Diagnosis engine: FailureRecord -> Diagnosis via an injected RuleTable."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from kuberoot.models.diagnosis import Diagnosis
from kuberoot.models.failures import FailureRecord
from kuberoot.models.tenancy import Tenant
from kuberoot.observability.logging import get_logger
from kuberoot.rules.confidence import enrich_confidence
from kuberoot.rules.table import RuleTable

_logger = get_logger("rules.engine")


def diagnose_failures(
    rules: RuleTable,
    tenant_id: str,
    cluster_id: str,
    failures: Iterable[FailureRecord],
) -> list[Diagnosis]:
    """Return one Diagnosis per (record, failure type) pair that has a rule.

    Failure types without a rule are skipped silently so that newer
    collectors can report types this backend does not know yet.
    """
    if not tenant_id:
        raise ValueError("tenant_id must not be empty")
    if not cluster_id:
        raise ValueError("cluster_id must not be empty")

    out: list[Diagnosis] = []
    for failure in failures:
        for failure_type in failure.types:
            rule = rules.get(failure_type)
            if rule is None:
                _logger.debug("no_rule_for_failure_type", failure_type=failure_type)
                continue
            out.append(
                Diagnosis(
                    tenant_id=tenant_id,
                    cluster_id=cluster_id,
                    pod_name=failure.name,
                    namespace=failure.namespace,
                    failure_type=rule.failure_type,
                    likely_cause=rule.likely_cause,
                    suggested_fix=rule.suggested_fix,
                    confidence=enrich_confidence(rule, failure.events),
                    events=failure.events,
                    timestamp=datetime.now(tz=UTC),
                )
            )
    return out


class DiagnosisEngine:
    """Stateless wrapper binding a RuleTable for use by the API layer."""

    def __init__(self, rules: RuleTable) -> None:
        self._rules = rules

    @property
    def rules(self) -> RuleTable:
        return self._rules

    def diagnose(self, tenant: Tenant, cluster_id: str, failures: Iterable[FailureRecord]) -> list[Diagnosis]:
        return diagnose_failures(self._rules, tenant.tenant_id, cluster_id, failures)
