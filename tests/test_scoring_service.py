"""
Tests for the smart sort scoring service.

Pure functions: every test passes the reference time explicitly.
"""

import math
from datetime import datetime, timezone

import pytest

from smartqueue.services.scoring_service import (
    NUDGE_FRESHNESS_WINDOW_MS,
    ScoringService,
    SmartScore,
    TicketSignals,
    nudge_freshness,
    time_score,
    user_penalty_factor,
)

NOW_MS = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc).timestamp() * 1000.0
MINUTE_MS = 60 * 1000.0
HOUR_MS = 60 * MINUTE_MS

UPDATED = "2025-05-30T10:00:00Z"
CREATED = "2025-05-20T10:00:00Z"


@pytest.fixture
def scorer():
    return ScoringService()


def nudged(age_ms: float, **kwargs) -> TicketSignals:
    return TicketSignals(nudge_count=1, last_nudge_at_ms=NOW_MS - age_ms, **kwargs)


class TestUrgencyScore:
    """Test the urgency formula"""

    def test_exact_formula(self, scorer):
        """Every component and the penalty combine as documented"""
        signals = TicketSignals(
            nudge_count=2,
            last_nudge_at_ms=NOW_MS,
            customer_message_count=3,
            has_staff_reply=False,
        )

        score = scorer.calculate(signals, 2, UPDATED, CREATED, NOW_MS)

        raw = math.log1p(2) + 3.0 + 2.0 + 4.0 + 1.5 * math.log1p(2)
        assert score.urgency_score == pytest.approx(raw / 1.6)

    def test_quiet_handled_ticket_scores_zero(self, scorer):
        """Opened, answered by staff, never nudged: no urgency"""
        signals = TicketSignals(customer_message_count=1, has_staff_reply=True)

        score = scorer.calculate(signals, 1, UPDATED, CREATED, NOW_MS)

        assert score.urgency_score == 0.0

    def test_opening_message_is_not_a_follow_up(self, scorer):
        """The first customer message does not count as a follow-up"""
        one = scorer.components(TicketSignals(customer_message_count=1), NOW_MS)
        none = scorer.components(TicketSignals(customer_message_count=0), NOW_MS)
        three = scorer.components(TicketSignals(customer_message_count=3), NOW_MS)

        assert one["follow_ups"] == 0.0
        assert none["follow_ups"] == 0.0
        assert three["follow_ups"] == pytest.approx(math.log1p(2))

    def test_never_handled_bonus(self, scorer):
        """A ticket without any staff reply gets +3"""
        unanswered = scorer.calculate(TicketSignals(), 1, UPDATED, CREATED, NOW_MS)
        answered = scorer.calculate(TicketSignals(has_staff_reply=True), 1, UPDATED, CREATED, NOW_MS)

        assert unanswered.urgency_score - answered.urgency_score == pytest.approx(3.0)

    def test_determinism(self, scorer):
        """Same inputs give identical scores"""
        signals = nudged(2 * HOUR_MS, customer_message_count=4)

        first = scorer.calculate(signals, 3, UPDATED, CREATED, NOW_MS)
        second = scorer.calculate(signals, 3, UPDATED, CREATED, NOW_MS)

        assert first == second


class TestNudgeFreshness:
    """Test linear decay of the freshness bonus"""

    def test_fresh_nudge_ranks_above_older_ones(self, scorer):
        """1 minute old >= 23 hours old >= 25 hours old"""
        fresh = scorer.calculate(nudged(MINUTE_MS), 1, UPDATED, CREATED, NOW_MS)
        day_old = scorer.calculate(nudged(23 * HOUR_MS), 1, UPDATED, CREATED, NOW_MS)
        expired = scorer.calculate(nudged(25 * HOUR_MS), 1, UPDATED, CREATED, NOW_MS)

        assert fresh.urgency_score >= day_old.urgency_score >= expired.urgency_score
        assert fresh.urgency_score > expired.urgency_score

    def test_freshness_expires_after_window(self):
        assert nudge_freshness(NOW_MS - 25 * HOUR_MS, NOW_MS) == 0.0
        assert nudge_freshness(NOW_MS - NUDGE_FRESHNESS_WINDOW_MS, NOW_MS) == 0.0

    def test_freshness_is_linear(self):
        assert nudge_freshness(NOW_MS, NOW_MS) == 1.0
        assert nudge_freshness(NOW_MS - 12 * HOUR_MS, NOW_MS) == pytest.approx(0.5)

    def test_missing_nudge_time_has_no_freshness(self):
        assert nudge_freshness(None, NOW_MS) == 0.0
        assert nudge_freshness(0, NOW_MS) == 0.0


class TestCustomerLoadDamping:
    """Test the penalty for customers with several open tickets"""

    def test_single_ticket_customer_outranks_heavy_customer(self, scorer):
        signals = nudged(HOUR_MS, customer_message_count=2)

        light = scorer.calculate(signals, 1, UPDATED, CREATED, NOW_MS)
        heavy = scorer.calculate(signals, 4, UPDATED, CREATED, NOW_MS)

        assert light.urgency_score > heavy.urgency_score
        assert heavy.urgency_score == pytest.approx(light.urgency_score / 2.8)

    def test_penalty_factor_values(self):
        assert user_penalty_factor(1) == 1.0
        assert user_penalty_factor(2) == pytest.approx(1 / 1.6)
        assert user_penalty_factor(4) == pytest.approx(1 / 2.8)

    def test_penalty_count_is_clamped(self):
        """Counts below one are treated as one"""
        assert user_penalty_factor(0) == 1.0
        assert user_penalty_factor(-3) == 1.0


class TestTimeScore:
    """Test the tie-break time score"""

    def test_blend_of_updated_and_created(self):
        updated = datetime(2025, 5, 30, 10, tzinfo=timezone.utc)
        created = datetime(2025, 5, 20, 10, tzinfo=timezone.utc)

        expected = 0.7 * updated.timestamp() * 1000 + 0.3 * created.timestamp() * 1000
        assert time_score(updated, created) == pytest.approx(expected)
        assert time_score(UPDATED, CREATED) == pytest.approx(expected)

    def test_unparseable_timestamps_count_as_zero(self):
        created = datetime(2025, 5, 20, 10, tzinfo=timezone.utc)

        assert time_score("not a date", created) == pytest.approx(0.3 * created.timestamp() * 1000)
        assert time_score(None, None) == 0.0

    def test_bad_timestamps_never_raise(self, scorer):
        score = scorer.calculate(TicketSignals(), 1, "garbage", 12345, NOW_MS)

        assert score == SmartScore(urgency_score=3.0, time_score=0.0)


class TestScoringBreakdown:
    """Test the debugging breakdown"""

    def test_breakdown_matches_score(self, scorer):
        signals = nudged(6 * HOUR_MS, customer_message_count=2, has_staff_reply=True)

        breakdown = scorer.get_scoring_breakdown(signals, 2, UPDATED, CREATED, NOW_MS)
        score = scorer.calculate(signals, 2, UPDATED, CREATED, NOW_MS)

        assert set(breakdown["components"]) == {
            "follow_ups", "never_handled", "ever_nudged", "nudge_freshness", "nudge_volume",
        }
        assert breakdown["components"]["never_handled"] == 0.0
        assert breakdown["components"]["ever_nudged"] == 2.0
        assert breakdown["components"]["nudge_freshness"] == pytest.approx(3.0)
        assert breakdown["urgency_score"] == score.urgency_score
        assert breakdown["time_score"] == score.time_score
        assert breakdown["raw_urgency"] * breakdown["user_penalty_factor"] == pytest.approx(score.urgency_score)
