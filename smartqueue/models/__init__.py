"""Smart Queue - Database Models"""

from .ticket import (
    MessageActor,
    OPEN_TICKET_STATUSES,
    SCORED_ACTORS,
    STAFF_ACTORS,
    Ticket,
    TicketMessage,
    TicketNudge,
    TicketSmartScore,
    TicketStatus,
)

__all__ = [
    "MessageActor",
    "OPEN_TICKET_STATUSES",
    "SCORED_ACTORS",
    "STAFF_ACTORS",
    "Ticket",
    "TicketMessage",
    "TicketNudge",
    "TicketSmartScore",
    "TicketStatus",
]
