"""Tests for evidence-weighted confidence scoring."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from kuberoot.models.diagnosis import Confidence, Rule
from kuberoot.rules.confidence import (
    MAX_SCORE,
    MIN_SCORE,
    confidence_score,
    enrich_confidence,
    has_evidence,
    score_confidence,
)
from kuberoot.rules.table import default_rule_table


def _rule(confidence: Confidence, keywords: tuple[str, ...] = ("back-off",)) -> Rule:
    return Rule(
        failure_type="CrashLoopBackOff",
        likely_cause="cause",
        suggested_fix="fix",
        confidence=confidence,
        evidence_keywords=keywords,
    )


class TestScores:
    def test_tier_scores(self) -> None:
        assert confidence_score(Confidence.LOW) == 1
        assert confidence_score(Confidence.MEDIUM) == 2
        assert confidence_score(Confidence.HIGH) == 3

    def test_string_tiers_are_case_insensitive(self) -> None:
        assert confidence_score("HIGH") == 3

    def test_unknown_tier_scores_low(self) -> None:
        assert confidence_score("certain") == MIN_SCORE

    def test_score_to_tier(self) -> None:
        assert score_confidence(3) is Confidence.HIGH
        assert score_confidence(2) is Confidence.MEDIUM
        assert score_confidence(1) is Confidence.LOW
        assert score_confidence(0) is Confidence.LOW


class TestHasEvidence:
    def test_case_insensitive_substring(self) -> None:
        assert has_evidence(("back-off restarting",), ["BackOff: Back-off restarting failed container"])

    def test_no_match(self) -> None:
        assert not has_evidence(("oomkilled",), ["Pulled: image pulled"])

    def test_no_keywords(self) -> None:
        assert not has_evidence((), ["anything"])


class TestEnrichConfidence:
    def test_crash_loop_with_back_off_event_is_high(self) -> None:
        rule = default_rule_table()["CrashLoopBackOff"]
        events = ["BackOff: Back-off restarting failed container"]
        assert enrich_confidence(rule, events) is Confidence.HIGH

    def test_image_pull_without_events_is_medium(self) -> None:
        rule = default_rule_table()["ImagePullBackOff"]
        assert enrich_confidence(rule, []) is Confidence.MEDIUM

    def test_oom_with_unrelated_events_keeps_base(self) -> None:
        rule = default_rule_table()["OOMKilled"]
        assert enrich_confidence(rule, ["Scheduled: assigned to node-1"]) is Confidence.HIGH

    def test_low_without_events_stays_low(self) -> None:
        assert enrich_confidence(_rule(Confidence.LOW), []) is Confidence.LOW

    def test_evidence_raises_once_only(self) -> None:
        events = ["back-off one", "back-off two", "back-off three"]
        assert enrich_confidence(_rule(Confidence.LOW), events) is Confidence.MEDIUM

    def test_high_with_evidence_is_clamped(self) -> None:
        assert enrich_confidence(_rule(Confidence.HIGH), ["back-off"]) is Confidence.HIGH


_tiers = st.sampled_from(list(Confidence))
_event_lists = st.lists(st.sampled_from(["back-off restarting", "Pulled", "Killing", "Created"]), max_size=3)


class TestEnrichConfidenceProperties:
    @given(tier=_tiers, events=_event_lists)
    @settings(max_examples=200)
    def test_moves_at_most_one_step(self, tier: Confidence, events: list[str]) -> None:
        result = enrich_confidence(_rule(tier), events)
        assert abs(confidence_score(result) - confidence_score(tier)) <= 1

    @given(tier=_tiers, events=_event_lists)
    @settings(max_examples=200)
    def test_result_within_bounds(self, tier: Confidence, events: list[str]) -> None:
        assert MIN_SCORE <= confidence_score(enrich_confidence(_rule(tier), events)) <= MAX_SCORE

    @given(tier=_tiers, events=_event_lists)
    @settings(max_examples=200)
    def test_evidence_never_lowers(self, tier: Confidence, events: list[str]) -> None:
        with_evidence = enrich_confidence(_rule(tier), [*events, "back-off restarting"])
        assert confidence_score(with_evidence) >= confidence_score(tier)
