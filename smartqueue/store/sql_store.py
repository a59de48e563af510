"""
SQLAlchemy implementation of the ticket store.

Runs on the async engine from ``smartqueue.core.database``. Postgres (asyncpg)
is the production backend; SQLite (aiosqlite) is used in tests. Score upserts
use the dialect's native ``INSERT ... ON CONFLICT DO UPDATE``.
"""

import time
from contextlib import contextmanager
from typing import Dict, List, Sequence

from sqlalchemy import select, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from smartqueue.core.database import create_session_factory
from smartqueue.core.exceptions import TicketStoreError
from smartqueue.middleware.logging_config import log_database_query
from smartqueue.models import (
    OPEN_TICKET_STATUSES,
    Ticket,
    TicketMessage,
    TicketNudge,
    TicketSmartScore,
)
from smartqueue.models.schemas import (
    MessageEvent,
    NudgeEvent,
    OpenTicket,
    ScoreRow,
    TicketListFilters,
    TicketListItem,
)
from smartqueue.store.base import TicketStore

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

_OPERATION_LABELS = {
    "fetch_open_tickets": "read open tickets",
    "fetch_nudges": "read nudges",
    "fetch_messages": "read message statistics",
    "upsert_scores": "write smart sort scores",
    "fetch_scores": "read smart sort scores",
    "fetch_tickets": "read tickets",
    "list_tickets": "list tickets",
}


class SqlTicketStore(TicketStore):
    """Ticket store backed by a relational database."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        dialect = engine.dialect.name
        if dialect not in _INSERT_BY_DIALECT:
            raise ValueError(f"Unsupported database dialect for score upserts: {dialect}")
        self._insert = _INSERT_BY_DIALECT[dialect]

    @contextmanager
    def _query(self, operation: str):
        """Time a store call and wrap database failures in TicketStoreError."""
        start = time.perf_counter()
        try:
            yield
        except SQLAlchemyError as e:
            log_database_query(operation, time.perf_counter() - start, error=str(e))
            raise TicketStoreError(
                operation,
                f"Failed to {_OPERATION_LABELS[operation]}: {e}",
            ) from e
        else:
            log_database_query(operation, time.perf_counter() - start)

    async def fetch_open_tickets(self) -> List[OpenTicket]:
        query = (
            select(Ticket.id, Ticket.creator_uid, Ticket.created_at, Ticket.updated_at)
            .where(Ticket.status.in_(OPEN_TICKET_STATUSES))
        )
        with self._query("fetch_open_tickets"):
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [
                    OpenTicket(id=row.id, creator_uid=row.creator_uid,
                               created_at=row.created_at, updated_at=row.updated_at)
                    for row in result
                ]

    async def fetch_nudges(self, ticket_ids: Sequence[str]) -> List[NudgeEvent]:
        if not ticket_ids:
            return []
        query = (
            select(TicketNudge.ticket_id, TicketNudge.created_at, TicketNudge.requester_uid)
            .where(TicketNudge.ticket_id.in_(list(ticket_ids)))
        )
        with self._query("fetch_nudges"):
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [
                    NudgeEvent(ticket_id=row.ticket_id, created_at=row.created_at,
                               requester_uid=row.requester_uid)
                    for row in result
                ]

    async def fetch_messages(self, ticket_ids: Sequence[str], actors: Sequence[str]) -> List[MessageEvent]:
        if not ticket_ids or not actors:
            return []
        query = (
            select(TicketMessage.ticket_id, TicketMessage.actor, TicketMessage.created_at)
            .where(TicketMessage.ticket_id.in_(list(ticket_ids)))
            .where(TicketMessage.actor.in_(list(actors)))
        )
        with self._query("fetch_messages"):
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [
                    MessageEvent(ticket_id=row.ticket_id, actor=row.actor, created_at=row.created_at)
                    for row in result
                ]

    async def upsert_scores(self, rows: Sequence[ScoreRow]) -> None:
        if not rows:
            return
        stmt = self._insert(TicketSmartScore).values([
            {
                "ticket_id": row.ticket_id,
                "urgency_score": row.urgency_score,
                "time_score": row.time_score,
                "computed_at": row.computed_at,
            }
            for row in rows
        ])
        stmt = stmt.on_conflict_do_update(
            index_elements=[TicketSmartScore.ticket_id],
            set_={
                "urgency_score": stmt.excluded.urgency_score,
                "time_score": stmt.excluded.time_score,
                "computed_at": stmt.excluded.computed_at,
            },
        )
        with self._query("upsert_scores"):
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(stmt)

    async def fetch_scores(self, ticket_ids: Sequence[str]) -> Dict[str, ScoreRow]:
        if not ticket_ids:
            return {}
        query = select(TicketSmartScore).where(TicketSmartScore.ticket_id.in_(list(ticket_ids)))
        with self._query("fetch_scores"):
            async with self.session_factory() as session:
                result = await session.execute(query)
                return {
                    score.ticket_id: ScoreRow(
                        ticket_id=score.ticket_id,
                        urgency_score=score.urgency_score,
                        time_score=score.time_score,
                        computed_at=score.computed_at,
                    )
                    for score in result.scalars()
                }

    async def fetch_tickets(self, ticket_ids: Sequence[str]) -> List[TicketListItem]:
        if not ticket_ids:
            return []
        query = select(Ticket).where(Ticket.id.in_(list(ticket_ids)))
        with self._query("fetch_tickets"):
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [TicketListItem.model_validate(t) for t in result.scalars()]

    async def list_tickets(self, filters: TicketListFilters) -> List[TicketListItem]:
        query = select(Ticket)

        if filters.statuses:
            query = query.where(Ticket.status.in_(list(filters.statuses)))

        assigned = list(dict.fromkeys(filters.assigned_to_uids))
        if filters.unassigned and assigned:
            query = query.where(or_(Ticket.assigned_to_uid.is_(None), Ticket.assigned_to_uid.in_(assigned)))
        elif filters.unassigned:
            query = query.where(Ticket.assigned_to_uid.is_(None))
        elif assigned:
            query = query.where(Ticket.assigned_to_uid.in_(assigned))

        if filters.query:
            # % and _ in the search text match literally
            pattern = filters.query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            query = query.where(Ticket.subject.ilike(f"%{pattern}%", escape="\\"))

        with self._query("list_tickets"):
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [TicketListItem.model_validate(t) for t in result.scalars()]
