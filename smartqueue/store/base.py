"""
Ticket store contract consumed by the smart sort services.

Lookups taking ticket ids accept any batch size; callers are responsible for
chunking large id sets to respect backend query-size limits.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

from smartqueue.models.schemas import (
    MessageEvent,
    NudgeEvent,
    OpenTicket,
    ScoreRow,
    TicketListFilters,
    TicketListItem,
)


class TicketStore(ABC):
    """Relational record store holding tickets, messages, nudges, and cached scores."""

    @abstractmethod
    async def fetch_open_tickets(self) -> List[OpenTicket]:
        """All tickets whose status is not closed."""

    @abstractmethod
    async def fetch_nudges(self, ticket_ids: Sequence[str]) -> List[NudgeEvent]:
        """Nudges recorded against any of the given tickets."""

    @abstractmethod
    async def fetch_messages(self, ticket_ids: Sequence[str], actors: Sequence[str]) -> List[MessageEvent]:
        """Messages on the given tickets written by one of the given actors."""

    @abstractmethod
    async def upsert_scores(self, rows: Sequence[ScoreRow]) -> None:
        """Insert or fully overwrite score rows, keyed by ticket id."""

    @abstractmethod
    async def fetch_scores(self, ticket_ids: Sequence[str]) -> Dict[str, ScoreRow]:
        """Cached scores for the given tickets, keyed by ticket id."""

    @abstractmethod
    async def fetch_tickets(self, ticket_ids: Sequence[str]) -> List[TicketListItem]:
        """Tickets by id, any status."""

    @abstractmethod
    async def list_tickets(self, filters: TicketListFilters) -> List[TicketListItem]:
        """Admin queue candidates matching the filters, in no particular order."""
