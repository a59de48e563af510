"""
Smart Sort: Signal Aggregator

Reduces raw nudge and message events for a set of tickets into per-ticket
scoring signals, plus the number of open tickets each creator holds.

All id lookups are chunked so a large queue never exceeds store query-size
limits. Any store failure aborts the whole aggregation.
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from smartqueue.core.utils import chunked, to_epoch_ms, unique
from smartqueue.middleware.logging_config import get_logger
from smartqueue.models import SCORED_ACTORS, STAFF_ACTORS, MessageActor
from smartqueue.models.schemas import OpenTicket
from smartqueue.services.scoring_service import TicketSignals
from smartqueue.store.base import TicketStore

logger = get_logger(__name__)

DEFAULT_IN_CHUNK_SIZE = 80


@dataclass
class AggregatedSignals:
    signals: Dict[str, TicketSignals] = field(default_factory=dict)
    open_count_by_creator: Dict[int, int] = field(default_factory=dict)

    def for_ticket(self, ticket_id: str) -> TicketSignals:
        return self.signals.get(ticket_id) or TicketSignals()

    def open_count_for(self, creator_uid) -> int:
        return max(1, self.open_count_by_creator.get(creator_uid, 1))


def count_open_by_creator(tickets: Sequence[OpenTicket]) -> Dict[int, int]:
    """Open tickets per creator; tickets without a creator are ignored."""
    return dict(Counter(t.creator_uid for t in tickets if t.creator_uid is not None))


class SignalAggregator:
    """Read-only aggregation of nudge and message history."""

    def __init__(self, store: TicketStore, chunk_size: int = DEFAULT_IN_CHUNK_SIZE):
        self.store = store
        self.chunk_size = chunk_size

    async def collect(self, ticket_ids: Sequence[str]) -> Dict[str, TicketSignals]:
        """Per-ticket signals for the given ids; every id gets an entry."""
        ids = unique(ticket_ids)
        signals: Dict[str, TicketSignals] = {ticket_id: TicketSignals() for ticket_id in ids}
        if not ids:
            return signals

        for chunk in chunked(ids, self.chunk_size):
            for nudge in await self.store.fetch_nudges(chunk):
                entry = signals.get(nudge.ticket_id)
                if entry is None or not nudge.created_at:
                    continue
                entry.nudge_count += 1
                ts = to_epoch_ms(nudge.created_at)
                if ts and (entry.last_nudge_at_ms is None or ts > entry.last_nudge_at_ms):
                    entry.last_nudge_at_ms = ts

        for chunk in chunked(ids, self.chunk_size):
            for message in await self.store.fetch_messages(chunk, SCORED_ACTORS):
                entry = signals.get(message.ticket_id)
                if entry is None or not message.actor:
                    continue
                if message.actor == MessageActor.CUSTOMER.value:
                    entry.customer_message_count += 1
                elif message.actor in STAFF_ACTORS:
                    entry.has_staff_reply = True
                    ts = to_epoch_ms(message.created_at)
                    if ts and (entry.last_staff_reply_at_ms is None or ts > entry.last_staff_reply_at_ms):
                        entry.last_staff_reply_at_ms = ts

        logger.debug("smart_sort_signals_collected", tickets=len(ids))
        return signals

    async def aggregate(self, open_tickets: Sequence[OpenTicket]) -> AggregatedSignals:
        """
        Signals for every open ticket plus per-creator open ticket counts.

        open_tickets must be the complete set of open tickets so that the
        creator counts reflect each customer's real load.
        """
        ticket_ids: List[str] = [t.id for t in open_tickets if t.id]
        return AggregatedSignals(
            signals=await self.collect(ticket_ids),
            open_count_by_creator=count_open_by_creator(open_tickets),
        )
