"""
Admin ticket queue listing.

Filters tickets in the store, ranks them, and annotates each with its latest
nudge and whether that nudge is still waiting for a staff reply. Also explains
one ticket's live smart sort score for debugging and weight tuning.
"""
from typing import List, Optional

from smartqueue.core.utils import from_epoch_ms, utcnow
from smartqueue.middleware.logging_config import get_logger
from smartqueue.models import TicketStatus
from smartqueue.models.schemas import (
    RankedTicket,
    SortDirection,
    TicketListFilters,
    TicketSort,
)
from smartqueue.services.ranking import TicketRanker
from smartqueue.services.scoring_service import ScoringService, TicketSignals, scoring_service
from smartqueue.services.signals import SignalAggregator, count_open_by_creator
from smartqueue.store.base import TicketStore

logger = get_logger(__name__)


def is_nudge_pending(status: str, signals: TicketSignals) -> bool:
    """An open ticket whose latest nudge came after the latest staff reply."""
    if status == TicketStatus.CLOSED.value or not signals.last_nudge_at_ms:
        return False
    if not signals.last_staff_reply_at_ms:
        return True
    return signals.last_nudge_at_ms > signals.last_staff_reply_at_ms


class AdminTicketQueue:
    """The admin-facing ticket listing."""

    def __init__(
        self,
        store: TicketStore,
        ranker: TicketRanker,
        aggregator: SignalAggregator,
        scoring: ScoringService = scoring_service,
    ):
        self.store = store
        self.ranker = ranker
        self.aggregator = aggregator
        self.scoring = scoring

    async def list(
        self,
        filters: Optional[TicketListFilters] = None,
        sort: TicketSort = TicketSort.UPDATED_AT,
        direction: SortDirection = SortDirection.DESC,
    ) -> List[RankedTicket]:
        tickets = await self.store.list_tickets(filters or TicketListFilters())
        if not tickets:
            return []

        ranked = await self.ranker.rank(tickets, sort, direction)
        signals = await self.aggregator.collect([t.id for t in ranked])
        for ticket in ranked:
            ticket_signals = signals.get(ticket.id) or TicketSignals()
            ticket.nudge_last_at = from_epoch_ms(ticket_signals.last_nudge_at_ms)
            ticket.nudge_pending = is_nudge_pending(ticket.status, ticket_signals)
        return ranked

    async def score_breakdown(self, ticket_id: str, now_ms: Optional[float] = None) -> Optional[dict]:
        """
        Score one open ticket from its current signals, component by component.

        Computed live, not read from the cache, so it reflects nudges and
        replies made since the last recompute pass. Returns None for unknown
        and closed tickets.
        """
        tickets = await self.store.fetch_tickets([ticket_id])
        if not tickets or tickets[0].status == TicketStatus.CLOSED.value:
            return None
        ticket = tickets[0]

        open_count = max(1, count_open_by_creator(await self.store.fetch_open_tickets()).get(ticket.creator_uid, 1))
        signals = (await self.aggregator.collect([ticket.id])).get(ticket.id) or TicketSignals()
        if now_ms is None:
            now_ms = utcnow().timestamp() * 1000.0

        breakdown = self.scoring.get_scoring_breakdown(
            signals, open_count, ticket.updated_at, ticket.created_at, now_ms
        )
        breakdown["open_ticket_count"] = open_count
        breakdown["ticket_info"] = {
            "ticket_id": ticket.id,
            "short_id": ticket.short_id,
            "status": ticket.status,
            "creator_uid": ticket.creator_uid,
            "nudge_count": signals.nudge_count,
            "customer_message_count": signals.customer_message_count,
            "has_staff_reply": signals.has_staff_reply,
        }

        logger.debug("smart_sort_breakdown_computed", ticket_id=ticket.id, urgency_score=breakdown["urgency_score"])
        return breakdown
