"""
Smart Sort: Scoring Service

Calculates the urgency score of an open ticket from its follow-up history:
- Customer follow-ups (log-damped, the opening message excluded)
- Never handled by staff (+3.0)
- Ever nudged (+2.0)
- Nudge freshness (up to +4.0, linear decay over 24h)
- Nudge volume (×1.5, log-damped)

The raw score is then damped for customers with several tickets open at once,
so one heavy user cannot monopolize the top of the queue.

A separate time score (a blend of updated_at and created_at) is only ever
used as a tie-break.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from smartqueue.core.utils import to_epoch_ms

NUDGE_FRESHNESS_WINDOW_MS = 24 * 60 * 60 * 1000

FOLLOW_UP_WEIGHT = 1.0
NEVER_HANDLED_WEIGHT = 3.0
EVER_NUDGED_WEIGHT = 2.0
NUDGE_FRESHNESS_WEIGHT = 4.0
NUDGE_VOLUME_WEIGHT = 1.5
OPEN_TICKET_PENALTY = 0.6

UPDATED_AT_TIME_WEIGHT = 0.7
CREATED_AT_TIME_WEIGHT = 0.3


@dataclass
class TicketSignals:
    """Aggregated scoring signals for one ticket."""
    nudge_count: int = 0
    last_nudge_at_ms: Optional[float] = None
    customer_message_count: int = 0
    has_staff_reply: bool = False
    last_staff_reply_at_ms: Optional[float] = None


@dataclass(frozen=True)
class SmartScore:
    urgency_score: float
    time_score: float


def time_score(updated_at: Any, created_at: Any) -> float:
    """Recency blend used as a tie-break; unparseable timestamps count as 0."""
    return to_epoch_ms(updated_at) * UPDATED_AT_TIME_WEIGHT + to_epoch_ms(created_at) * CREATED_AT_TIME_WEIGHT


def nudge_freshness(last_nudge_at_ms: Optional[float], now_ms: float) -> float:
    """1.0 for a nudge made just now, falling linearly to 0 after 24 hours."""
    if not last_nudge_at_ms:
        return 0.0
    return max(0.0, 1.0 - (now_ms - last_nudge_at_ms) / NUDGE_FRESHNESS_WINDOW_MS)


def user_penalty_factor(open_ticket_count: int) -> float:
    open_count = max(1, int(open_ticket_count or 1))
    return 1.0 / (1.0 + OPEN_TICKET_PENALTY * (open_count - 1))


class ScoringService:
    """
    Calculate smart sort scores for open tickets.

    Higher urgency score = more urgent. Pure and deterministic: the current time
    is passed in, never read.
    """

    def components(self, signals: TicketSignals, now_ms: float) -> Dict[str, float]:
        """Weighted contribution of every urgency signal."""
        user_reply_count = max(0, signals.customer_message_count - 1)
        never_handled = 0 if signals.has_staff_reply else 1
        ever_nudged = 1 if signals.nudge_count > 0 else 0

        return {
            "follow_ups": FOLLOW_UP_WEIGHT * math.log1p(user_reply_count),
            "never_handled": NEVER_HANDLED_WEIGHT * never_handled,
            "ever_nudged": EVER_NUDGED_WEIGHT * ever_nudged,
            "nudge_freshness": NUDGE_FRESHNESS_WEIGHT * nudge_freshness(signals.last_nudge_at_ms, now_ms),
            "nudge_volume": NUDGE_VOLUME_WEIGHT * math.log1p(max(0, signals.nudge_count)),
        }

    def calculate(
        self,
        signals: TicketSignals,
        open_ticket_count: int,
        updated_at: Any,
        created_at: Any,
        now_ms: float,
    ) -> SmartScore:
        """
        Score one ticket.

        Args:
            signals: Aggregated nudge and message signals for the ticket
            open_ticket_count: Tickets the ticket's creator currently has open (clamped to >= 1)
            updated_at: Ticket updated_at (datetime or ISO string)
            created_at: Ticket created_at (datetime or ISO string)
            now_ms: Reference time in epoch milliseconds

        Returns:
            SmartScore with urgency_score and time_score
        """
        raw_urgency = sum(self.components(signals, now_ms).values())
        return SmartScore(
            urgency_score=raw_urgency * user_penalty_factor(open_ticket_count),
            time_score=time_score(updated_at, created_at),
        )

    def get_scoring_breakdown(
        self,
        signals: TicketSignals,
        open_ticket_count: int,
        updated_at: Any,
        created_at: Any,
        now_ms: float,
    ) -> dict:
        """
        Return detailed breakdown of a score for debugging/explanation.

        Useful for:
        - Understanding why tickets are ordered
        - Tuning weights
        """
        components = self.components(signals, now_ms)
        score = self.calculate(signals, open_ticket_count, updated_at, created_at, now_ms)
        return {
            "urgency_score": score.urgency_score,
            "time_score": score.time_score,
            "raw_urgency": sum(components.values()),
            "user_penalty_factor": user_penalty_factor(open_ticket_count),
            "components": components,
        }


# Global scoring service instance
scoring_service = ScoringService()
