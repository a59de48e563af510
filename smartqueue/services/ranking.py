"""
Smart Sort: Ranking Query

Orders an already-filtered ticket listing.

- Chronological modes sort by created_at or updated_at.
- Smart mode sorts by cached urgency score, then cached time score.
  Tickets without a usable cached row rank with urgency 0 and a time score
  computed on the spot from their own timestamps.

Every mode ends with ticket id ascending, so the result is a strict total order.
"""
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

from smartqueue.core.utils import chunked, parse_timestamp, to_epoch_ms, unique, utcnow
from smartqueue.middleware.logging_config import get_logger
from smartqueue.models import TicketStatus
from smartqueue.models.schemas import (
    RankedTicket,
    ScoreRow,
    SortDirection,
    TicketListItem,
    TicketSort,
)
from smartqueue.services.scoring_service import time_score
from smartqueue.services.signals import DEFAULT_IN_CHUNK_SIZE
from smartqueue.store.base import TicketStore

logger = get_logger(__name__)


class TicketRanker:
    """Read-time ordering of ticket listings by cached smart sort scores."""

    def __init__(
        self,
        store: TicketStore,
        chunk_size: int = DEFAULT_IN_CHUNK_SIZE,
        score_ttl_seconds: Optional[int] = None,
    ):
        self.store = store
        self.chunk_size = chunk_size
        self.score_ttl_seconds = score_ttl_seconds

    async def fetch_scores(self, ticket_ids: Sequence[str]) -> Dict[str, ScoreRow]:
        """Cached scores for exactly these ids, looked up in chunks."""
        scores: Dict[str, ScoreRow] = {}
        for chunk in chunked(unique(ticket_ids), self.chunk_size):
            scores.update(await self.store.fetch_scores(chunk))
        return scores

    def usable_score(self, ticket: TicketListItem, score: Optional[ScoreRow]) -> Optional[ScoreRow]:
        """
        The cached score if it may be shown for this ticket.

        Closed tickets never show a score. With a TTL configured, rows older
        than the TTL are treated as absent too.
        """
        if score is None or ticket.status == TicketStatus.CLOSED.value:
            return None
        if self.score_ttl_seconds is not None:
            computed_at = parse_timestamp(score.computed_at)
            if computed_at is None or utcnow() - computed_at > timedelta(seconds=self.score_ttl_seconds):
                return None
        return score

    async def score_for(self, ticket_id: str) -> Optional[ScoreRow]:
        """Displayable cached score of one ticket, or None."""
        tickets = await self.store.fetch_tickets([ticket_id])
        if not tickets:
            return None
        scores = await self.store.fetch_scores([ticket_id])
        return self.usable_score(tickets[0], scores.get(ticket_id))

    async def rank(
        self,
        tickets: Sequence[TicketListItem],
        sort: TicketSort = TicketSort.UPDATED_AT,
        direction: SortDirection = SortDirection.DESC,
    ) -> List[RankedTicket]:
        """
        Order tickets for display.

        Scores are looked up in every mode so the listing can show them, but
        only smart mode orders by them.
        """
        scores = await self.fetch_scores([t.id for t in tickets])
        ranked = [
            RankedTicket(**{**t.model_dump(), "smart_score": self.usable_score(t, scores.get(t.id))})
            for t in tickets
        ]
        descending = direction == SortDirection.DESC

        # Stable sorts: id ascending first, so it survives as the last tie-break
        ranked.sort(key=lambda t: t.id)
        if sort == TicketSort.SMART:
            ranked.sort(key=_smart_key, reverse=descending)
        elif sort == TicketSort.CREATED_AT:
            ranked.sort(key=lambda t: to_epoch_ms(t.created_at), reverse=descending)
        else:
            ranked.sort(key=lambda t: to_epoch_ms(t.updated_at), reverse=descending)

        logger.debug("tickets_ranked", count=len(ranked), sort=sort.value, order=direction.value)
        return ranked


def _smart_key(ticket: RankedTicket):
    if ticket.smart_score is not None:
        return (ticket.smart_score.urgency_score, ticket.smart_score.time_score)
    return (0.0, time_score(ticket.updated_at, ticket.created_at))
