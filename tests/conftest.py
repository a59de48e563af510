"""
Pytest Configuration and Fixtures

Shared fixtures for all tests:
- In-memory ticket store double (failure and delay injection, call recording)
- SQLite (aiosqlite) engine and SQL ticket store
- Timestamp helpers
"""

import asyncio
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from smartqueue.core.database import Base, create_session_factory
from smartqueue.models import OPEN_TICKET_STATUSES, TicketStatus
from smartqueue.models.schemas import (
    MessageEvent,
    NudgeEvent,
    OpenTicket,
    ScoreRow,
    TicketListFilters,
    TicketListItem,
)
from smartqueue.store import SqlTicketStore, TicketStore


def ago(**kwargs) -> datetime:
    """Aware UTC datetime the given timedelta in the past."""
    return datetime.now(timezone.utc) - timedelta(**kwargs)


class InMemoryTicketStore(TicketStore):
    """
    Ticket store double.

    Records every call and the id batch it received. ``failures`` maps an
    operation name to the exception it should raise; ``delay`` makes
    fetch_open_tickets sleep, to hold a recompute pass in flight.
    """

    def __init__(self):
        self.tickets: Dict[str, TicketListItem] = {}
        self.nudges: List[NudgeEvent] = []
        self.messages: List[MessageEvent] = []
        self.scores: Dict[str, ScoreRow] = {}
        self.calls: Counter = Counter()
        self.batches: Dict[str, List[list]] = defaultdict(list)
        self.failures: Dict[str, Exception] = {}
        self.delay: float = 0.0

    # ---- seeding helpers ----

    def add_ticket(
        self,
        ticket_id: str,
        creator_uid: int = 1,
        status: str = TicketStatus.PENDING_ASSIGN.value,
        created_at=None,
        updated_at=None,
        subject: str = "",
        assigned_to_uid: Optional[int] = None,
    ) -> TicketListItem:
        created_at = created_at if created_at is not None else ago(days=1)
        ticket = TicketListItem(
            id=ticket_id,
            short_id=f"T-{ticket_id}",
            subject=subject,
            status=status,
            creator_uid=creator_uid,
            assigned_to_uid=assigned_to_uid,
            created_at=created_at,
            updated_at=updated_at if updated_at is not None else created_at,
        )
        self.tickets[ticket_id] = ticket
        return ticket

    def add_nudge(self, ticket_id: str, created_at, requester_uid: int = 1) -> None:
        self.nudges.append(NudgeEvent(ticket_id=ticket_id, created_at=created_at, requester_uid=requester_uid))

    def add_message(self, ticket_id: str, actor: str, created_at) -> None:
        self.messages.append(MessageEvent(ticket_id=ticket_id, actor=actor, created_at=created_at))

    async def _enter(self, operation: str, batch: Optional[Sequence] = None) -> None:
        self.calls[operation] += 1
        if batch is not None:
            self.batches[operation].append(list(batch))
        if operation in self.failures:
            raise self.failures[operation]

    # ---- TicketStore ----

    async def fetch_open_tickets(self) -> List[OpenTicket]:
        await self._enter("fetch_open_tickets")
        if self.delay:
            await asyncio.sleep(self.delay)
        return [
            OpenTicket(id=t.id, creator_uid=t.creator_uid, created_at=t.created_at, updated_at=t.updated_at)
            for t in self.tickets.values()
            if t.status in OPEN_TICKET_STATUSES
        ]

    async def fetch_nudges(self, ticket_ids: Sequence[str]) -> List[NudgeEvent]:
        await self._enter("fetch_nudges", ticket_ids)
        wanted = set(ticket_ids)
        return [n for n in self.nudges if n.ticket_id in wanted]

    async def fetch_messages(self, ticket_ids: Sequence[str], actors: Sequence[str]) -> List[MessageEvent]:
        await self._enter("fetch_messages", ticket_ids)
        wanted = set(ticket_ids)
        return [m for m in self.messages if m.ticket_id in wanted and m.actor in actors]

    async def upsert_scores(self, rows: Sequence[ScoreRow]) -> None:
        await self._enter("upsert_scores", rows)
        for row in rows:
            self.scores[row.ticket_id] = row

    async def fetch_scores(self, ticket_ids: Sequence[str]) -> Dict[str, ScoreRow]:
        await self._enter("fetch_scores", ticket_ids)
        return {tid: self.scores[tid] for tid in ticket_ids if tid in self.scores}

    async def fetch_tickets(self, ticket_ids: Sequence[str]) -> List[TicketListItem]:
        await self._enter("fetch_tickets", ticket_ids)
        return [self.tickets[tid] for tid in ticket_ids if tid in self.tickets]

    async def list_tickets(self, filters: TicketListFilters) -> List[TicketListItem]:
        await self._enter("list_tickets")
        result = []
        for ticket in self.tickets.values():
            if filters.statuses and ticket.status not in filters.statuses:
                continue
            if filters.unassigned or filters.assigned_to_uids:
                unassigned_match = filters.unassigned and ticket.assigned_to_uid is None
                assigned_match = ticket.assigned_to_uid in filters.assigned_to_uids
                if not (unassigned_match or assigned_match):
                    continue
            if filters.query and filters.query.lower() not in ticket.subject.lower():
                continue
            result.append(ticket)
        return result


@pytest.fixture
def store() -> InMemoryTicketStore:
    """Empty in-memory ticket store"""
    return InMemoryTicketStore()


# Database fixtures

@pytest_asyncio.fixture
async def sql_engine():
    """Test database engine (in-memory SQLite, one shared connection)"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(sql_engine):
    """Session for seeding rows directly"""
    session_factory = create_session_factory(sql_engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def sql_store(sql_engine) -> SqlTicketStore:
    return SqlTicketStore(sql_engine)
