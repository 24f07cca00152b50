"""Evidence-weighted confidence scoring.

Scores are integers 1..3 (low, medium, high).  The base tier of a rule is
lowered by one step when no events corroborate the failure, and raised by
one step (once) when any event mentions one of the rule's keywords.
"""

from __future__ import annotations

from collections.abc import Sequence

from kuberoot.models.diagnosis import Confidence, Rule

_SCORES = {
    Confidence.LOW: 1,
    Confidence.MEDIUM: 2,
    Confidence.HIGH: 3,
}

MIN_SCORE = 1
MAX_SCORE = 3


def confidence_score(confidence: Confidence | str) -> int:
    """Map a tier to its score; unknown tiers score as low."""
    try:
        return _SCORES[Confidence(str(confidence).lower())]
    except ValueError:
        return MIN_SCORE


def score_confidence(score: int) -> Confidence:
    if score >= MAX_SCORE:
        return Confidence.HIGH
    if score == 2:
        return Confidence.MEDIUM
    return Confidence.LOW


def has_evidence(keywords: Sequence[str], events: Sequence[str]) -> bool:
    """True when any event contains any keyword (case-insensitive)."""
    lowered = [keyword.lower() for keyword in keywords]
    return any(keyword in event.lower() for event in events for keyword in lowered)


def enrich_confidence(rule: Rule, events: Sequence[str]) -> Confidence:
    """Adjust the rule's base confidence using the correlated events."""
    score = confidence_score(rule.confidence)
    if not events:
        score = max(MIN_SCORE, score - 1)
    if has_evidence(rule.evidence_keywords, events):
        score += 1
    return score_confidence(min(score, MAX_SCORE))
