"""
Ticket System Database Models

Provides SQLAlchemy models for the tables the smart queue reads and writes:
- Tickets: Main support tickets
- TicketMessages: Customer, staff, system, and anonymous messages
- TicketNudges: Customer "please expedite" requests
- TicketSmartScores: Cached urgency scores, one row per ticket
"""

import enum
import uuid

from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from smartqueue.core.database import Base


class TicketStatus(str, enum.Enum):
    PENDING_ASSIGN = "pending_assign"
    ASSIGNED = "assigned"
    REPLIED_BY_STAFF = "replied_by_staff"
    REPLIED_BY_CUSTOMER = "replied_by_customer"
    CLOSED = "closed"


OPEN_TICKET_STATUSES = (
    TicketStatus.PENDING_ASSIGN.value,
    TicketStatus.ASSIGNED.value,
    TicketStatus.REPLIED_BY_STAFF.value,
    TicketStatus.REPLIED_BY_CUSTOMER.value,
)


class MessageActor(str, enum.Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    SYSTEM = "system"
    ANONYMOUS = "anonymous"


# Actors whose messages count as a staff reply
STAFF_ACTORS = (MessageActor.STAFF.value, MessageActor.ANONYMOUS.value)
SCORED_ACTORS = (MessageActor.CUSTOMER.value,) + STAFF_ACTORS


def _new_id() -> str:
    return str(uuid.uuid4())


class Ticket(Base):
    """
    Main ticket model representing a customer support request.

    Any status other than ``closed`` makes the ticket eligible for scoring.
    """
    __tablename__ = "tickets"

    id = Column(String(36), primary_key=True, default=_new_id)
    short_id = Column(String(20), unique=True, nullable=False, index=True)

    subject = Column(String(500), nullable=False, default="")
    status = Column(String(32), nullable=False, default=TicketStatus.PENDING_ASSIGN.value, index=True)
    creator_uid = Column(Integer, nullable=False, index=True)
    category_id = Column(String(36))
    assigned_to_uid = Column(Integer, index=True)  # null if unassigned

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    messages = relationship("TicketMessage", back_populates="ticket", cascade="all, delete-orphan")
    nudges = relationship("TicketNudge", back_populates="ticket", cascade="all, delete-orphan")
    smart_score = relationship("TicketSmartScore", back_populates="ticket", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Ticket {self.short_id} - {self.status} - {self.creator_uid}>"


class TicketMessage(Base):
    """
    Individual message within a ticket conversation.

    Only the actor and timestamp matter for scoring.
    """
    __tablename__ = "ticket_messages"

    id = Column(String(36), primary_key=True, default=_new_id)
    ticket_id = Column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)

    actor = Column(String(20), nullable=False)  # customer, staff, system, anonymous
    author_uid = Column(Integer)
    body = Column(Text)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    ticket = relationship("Ticket", back_populates="messages")

    def __repr__(self):
        return f"<TicketMessage {self.actor} on {self.ticket_id}>"


class TicketNudge(Base):
    """A customer's request to expedite a ticket."""
    __tablename__ = "ticket_nudges"

    id = Column(String(36), primary_key=True, default=_new_id)
    ticket_id = Column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    requester_uid = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    ticket = relationship("Ticket", back_populates="nudges")

    def __repr__(self):
        return f"<TicketNudge {self.ticket_id} by {self.requester_uid}>"


class TicketSmartScore(Base):
    """
    Cached smart sort score (derived data).

    Overwritten wholesale by every recompute pass; keyed by ticket id.
    """
    __tablename__ = "ticket_smart_scores"

    ticket_id = Column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), primary_key=True)
    urgency_score = Column(Float, nullable=False)
    time_score = Column(Float, nullable=False)
    computed_at = Column(DateTime(timezone=True), nullable=False)

    ticket = relationship("Ticket", back_populates="smart_score")

    def __repr__(self):
        return f"<TicketSmartScore {self.ticket_id} urgency={self.urgency_score:.3f}>"
