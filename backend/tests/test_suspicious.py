"""
Tests for suspicious answer-pattern detection.
"""

import pytest

from passcut.scoring.suspicious import answer_entropy, detect_suspicious_answers

# 100 answers spread over the four choices without a short cycle
NATURAL = [(i * 7 + i // 3) % 4 + 1 for i in range(100)]


class TestDetectSuspiciousAnswers:
    def test_natural_answers_are_clean(self):
        report = detect_suspicious_answers(NATURAL, total_score=180.0, max_score=250.0, duration_seconds=3600)
        assert report.reasons == []
        assert report.is_suspicious is False

    def test_single_choice_flags_dominance_and_entropy(self):
        report = detect_suspicious_answers([2] * 100, total_score=60.0, max_score=250.0)
        assert report.is_suspicious
        assert any(r.startswith("single answer dominance: choice 2") for r in report.reasons)
        assert any(r.startswith("low answer entropy") for r in report.reasons)

    def test_repeating_cycle_flagged(self):
        report = detect_suspicious_answers([1, 2, 3] * 33 + [1], total_score=80.0, max_score=250.0)
        assert any(r.startswith("repeating pattern 1-2-3") for r in report.reasons)

    def test_low_score_flagged(self):
        report = detect_suspicious_answers(NATURAL, total_score=10.0, max_score=250.0)
        assert any(r.startswith("unrealistically low score") for r in report.reasons)

    @pytest.mark.parametrize("duration,flagged", [(60, True), (119, True), (120, False), (None, False), (0, False)])
    def test_fast_submit(self, duration, flagged):
        report = detect_suspicious_answers(NATURAL, total_score=180.0, max_score=250.0, duration_seconds=duration)
        assert any(r.startswith("submitted in") for r in report.reasons) is flagged


class TestAnswerEntropy:
    def test_uniform_spread_is_two_bits(self):
        assert answer_entropy([1, 2, 3, 4] * 10) == pytest.approx(2.0)

    def test_empty_is_zero(self):
        assert answer_entropy([]) == 0.0
