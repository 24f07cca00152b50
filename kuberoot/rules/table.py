"""Rule table for the diagnosis engine.

The table is an immutable value built once at startup and handed to the
engine; alternate tables (tests, future rule sets) are built the same way.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from kuberoot.models.diagnosis import Confidence, Rule
from kuberoot.models.failures import FailureType


class RuleTable(Mapping[str, Rule]):
    """Read-only mapping of failure type -> Rule.  One rule per failure type."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        by_type: dict[str, Rule] = {}
        for rule in rules:
            if rule.failure_type in by_type:
                raise ValueError(f"Duplicate rule for failure type {rule.failure_type!r}")
            by_type[rule.failure_type] = rule
        self._rules = MappingProxyType(by_type)

    def __getitem__(self, failure_type: str) -> Rule:
        return self._rules[failure_type]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleTable({sorted(self._rules)!r})"


DEFAULT_RULES: tuple[Rule, ...] = (
    Rule(
        failure_type=FailureType.CRASH_LOOP_BACK_OFF.value,
        likely_cause="Application crash or configuration error",
        suggested_fix="Check application logs; verify environment variables; validate ConfigMap/Secret mounts",
        confidence=Confidence.MEDIUM,
        evidence_keywords=("back-off restarting", "crashloopbackoff", "failed"),
    ),
    Rule(
        failure_type=FailureType.OOM_KILLED.value,
        likely_cause="Container exceeded memory limit",
        suggested_fix="Increase memory limit; inspect memory usage; investigate memory leaks",
        confidence=Confidence.HIGH,
        evidence_keywords=("oomkilled", "out of memory", "killing"),
    ),
    Rule(
        failure_type=FailureType.IMAGE_PULL_BACK_OFF.value,
        likely_cause="Image pull failed due to image name, registry access, or credentials",
        suggested_fix="Verify image name; check registry access; validate pull secret for private registry",
        confidence=Confidence.HIGH,
        evidence_keywords=("failed to pull image", "pull access denied", "manifest unknown", "imagepullbackoff"),
    ),
)


def default_rule_table() -> RuleTable:
    """Build the built-in rule table.  FailedScheduling has no rule."""
    return RuleTable(DEFAULT_RULES)
