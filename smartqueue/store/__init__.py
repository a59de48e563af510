"""Ticket store: the relational collaborator the smart sort services read and write."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from .base import TicketStore
from .sql_store import SqlTicketStore


def build_ticket_store(engine: Optional[AsyncEngine]) -> Optional[TicketStore]:
    """SQL ticket store for the engine, or None when no database is configured."""
    if engine is None:
        return None
    return SqlTicketStore(engine)


__all__ = ["TicketStore", "SqlTicketStore", "build_ticket_store"]
