"""Rule engine for Kuberoot.

Submodules:
    table       -- Immutable RuleTable and the built-in rules.
    confidence  -- Evidence-weighted confidence scoring.
    engine      -- DiagnosisEngine and diagnose_failures().
"""

from kuberoot.rules.confidence import enrich_confidence
from kuberoot.rules.engine import DiagnosisEngine, diagnose_failures
from kuberoot.rules.table import DEFAULT_RULES, RuleTable, default_rule_table

__all__ = [
    "DEFAULT_RULES",
    "DiagnosisEngine",
    "RuleTable",
    "default_rule_table",
    "diagnose_failures",
    "enrich_confidence",
]
