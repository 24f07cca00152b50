"""Tests for the rule table and diagnosis engine."""

from __future__ import annotations

from datetime import UTC

import pytest

from kuberoot.models.diagnosis import Confidence, Rule
from kuberoot.models.failures import FailureRecord
from kuberoot.models.tenancy import Tenant
from kuberoot.rules.engine import DiagnosisEngine, diagnose_failures
from kuberoot.rules.table import DEFAULT_RULES, RuleTable


def _record(*types: str, events: tuple[str, ...] = ()) -> FailureRecord:
    return FailureRecord(namespace="prod", name="web-0", container="web", types=types, events=events)


class TestRuleTable:
    def test_default_table_covers_container_failures(self, rules: RuleTable) -> None:
        assert set(rules) == {"CrashLoopBackOff", "OOMKilled", "ImagePullBackOff"}

    def test_failed_scheduling_has_no_rule(self, rules: RuleTable) -> None:
        assert "FailedScheduling" not in rules
        assert rules.get("FailedScheduling") is None

    def test_duplicate_failure_type_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate rule"):
            RuleTable([DEFAULT_RULES[0], DEFAULT_RULES[0]])

    def test_table_is_read_only(self, rules: RuleTable) -> None:
        with pytest.raises(TypeError):
            rules["New"] = DEFAULT_RULES[0]  # type: ignore[index]

    def test_rules_are_frozen(self, rules: RuleTable) -> None:
        with pytest.raises(AttributeError):
            rules["OOMKilled"].likely_cause = "changed"  # type: ignore[misc]


class TestDiagnoseFailures:
    def test_one_diagnosis_per_known_type(self, rules: RuleTable) -> None:
        result = diagnose_failures(rules, "org-a", "cluster-1", [_record("CrashLoopBackOff", "OOMKilled")])
        assert [d.failure_type for d in result] == ["CrashLoopBackOff", "OOMKilled"]
        assert all(d.tenant_id == "org-a" and d.cluster_id == "cluster-1" for d in result)
        assert all(d.pod_name == "web-0" and d.namespace == "prod" for d in result)

    def test_types_without_rule_are_dropped(self, rules: RuleTable) -> None:
        result = diagnose_failures(rules, "org-a", "cluster-1", [_record("FailedScheduling"), _record("Evicted")])
        assert result == []

    def test_rule_text_is_copied(self, rules: RuleTable) -> None:
        (diagnosis,) = diagnose_failures(rules, "org-a", "c", [_record("OOMKilled")])
        rule = rules["OOMKilled"]
        assert diagnosis.likely_cause == rule.likely_cause
        assert diagnosis.suggested_fix == rule.suggested_fix

    def test_events_and_confidence_carried(self, rules: RuleTable) -> None:
        events = ("BackOff: Back-off restarting failed container",)
        (diagnosis,) = diagnose_failures(rules, "org-a", "c", [_record("CrashLoopBackOff", events=events)])
        assert diagnosis.events == events
        assert diagnosis.confidence is Confidence.HIGH

    def test_timestamps_are_utc(self, rules: RuleTable) -> None:
        (diagnosis,) = diagnose_failures(rules, "org-a", "c", [_record("OOMKilled")])
        assert diagnosis.timestamp.tzinfo is UTC

    def test_empty_input(self, rules: RuleTable) -> None:
        assert diagnose_failures(rules, "org-a", "c", []) == []

    @pytest.mark.parametrize(("tenant_id", "cluster_id"), [("", "c"), ("org-a", "")])
    def test_empty_ids_rejected(self, rules: RuleTable, tenant_id: str, cluster_id: str) -> None:
        with pytest.raises(ValueError):
            diagnose_failures(rules, tenant_id, cluster_id, [_record("OOMKilled")])

    def test_alternate_table(self) -> None:
        table = RuleTable(
            [
                Rule(
                    failure_type="FailedScheduling",
                    likely_cause="Insufficient capacity",
                    suggested_fix="Add nodes",
                    confidence=Confidence.LOW,
                )
            ]
        )
        result = diagnose_failures(table, "org-a", "c", [_record("FailedScheduling", "OOMKilled")])
        assert [d.failure_type for d in result] == ["FailedScheduling"]
        assert result[0].confidence is Confidence.LOW


class TestDiagnosisEngine:
    def test_diagnose_uses_tenant(self, rules: RuleTable) -> None:
        engine = DiagnosisEngine(rules)
        (diagnosis,) = engine.diagnose(Tenant("org-b"), "cluster-9", [_record("ImagePullBackOff")])
        assert diagnosis.tenant_id == "org-b"
        assert diagnosis.cluster_id == "cluster-9"
        assert diagnosis.confidence is Confidence.MEDIUM

    def test_exposes_rules(self, rules: RuleTable) -> None:
        assert DiagnosisEngine(rules).rules is rules
