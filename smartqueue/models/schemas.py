"""
Records exchanged between the ticket store, the smart sort services, and the API.

Store rows are plain dataclasses; anything that crosses the HTTP boundary is a
Pydantic model.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class TicketSort(str, enum.Enum):
    UPDATED_AT = "updated_at"
    CREATED_AT = "created_at"
    SMART = "smart"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TicketSort":
        """Unknown or missing values fall back to updated_at."""
        try:
            return cls(value)
        except ValueError:
            return cls.UPDATED_AT


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortDirection":
        """Unknown or missing values fall back to desc."""
        try:
            return cls(value)
        except ValueError:
            return cls.DESC


# ==================== Store Rows ====================

@dataclass(frozen=True)
class OpenTicket:
    id: str
    creator_uid: Optional[int]
    created_at: Any
    updated_at: Any


@dataclass(frozen=True)
class NudgeEvent:
    ticket_id: str
    created_at: Any
    requester_uid: Optional[int] = None


@dataclass(frozen=True)
class MessageEvent:
    ticket_id: str
    actor: str
    created_at: Any


@dataclass
class TicketListFilters:
    """Admin queue filters applied by the store before ranking."""
    statuses: List[str] = field(default_factory=list)
    assigned_to_uids: List[int] = field(default_factory=list)
    unassigned: bool = False
    query: Optional[str] = None


# ==================== API Models ====================

class ScoreRow(BaseModel):
    """One cached smart sort score."""
    ticket_id: str
    urgency_score: float
    time_score: float
    computed_at: datetime


class TicketListItem(BaseModel):
    """A ticket as listed in the admin queue."""
    id: str
    short_id: str
    subject: str = ""
    status: str
    creator_uid: Optional[int] = None
    category_id: Optional[str] = None
    assigned_to_uid: Optional[int] = None
    created_at: Any = None
    updated_at: Any = None

    model_config = {"from_attributes": True}


class RankedTicket(TicketListItem):
    """Listed ticket with its smart sort and nudge annotations."""
    smart_score: Optional[ScoreRow] = Field(None, description="Cached score, null when not computed")
    nudge_last_at: Optional[datetime] = None
    nudge_pending: bool = False


class RecomputeResult(BaseModel):
    """Outcome of one full recompute pass."""
    computed_at: datetime
    open_tickets: int
    upserted_rows: int


class TicketListResponse(BaseModel):
    tickets: List[RankedTicket]
    total: int
    sort: TicketSort
    order: SortDirection
