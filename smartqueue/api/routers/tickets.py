"""
Admin Tickets Router

Provides the admin ticket queue endpoints:
- Listing tickets with filtering and chronological or smart ordering
- Reading one ticket's cached smart sort score and its live score breakdown
- Triggering a smart sort recompute on demand
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from smartqueue.api.dependencies import get_coordinator, get_ranker, get_ticket_queue
from smartqueue.middleware.error_handling import NotFoundError
from smartqueue.middleware.logging_config import get_logger
from smartqueue.models.schemas import (
    RecomputeResult,
    ScoreRow,
    SortDirection,
    TicketListFilters,
    TicketListResponse,
    TicketSort,
)
from smartqueue.services.ranking import TicketRanker
from smartqueue.services.recompute import RecomputeCoordinator
from smartqueue.services.ticket_queue import AdminTicketQueue

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["tickets"])


@router.get("/tickets", response_model=TicketListResponse)
async def list_tickets(
    status: Optional[List[str]] = Query(None, description="Filter by status (repeatable)"),
    assigned_to: Optional[List[int]] = Query(None, description="Filter by assignee uid (repeatable)"),
    unassigned: bool = Query(False, description="Include unassigned tickets (OR-ed with assigned_to)"),
    q: Optional[str] = Query(None, description="Case-insensitive subject search"),
    sort: Optional[str] = Query("updated_at", description="updated_at, created_at, or smart"),
    order: Optional[str] = Query("desc", description="asc or desc"),
    queue: AdminTicketQueue = Depends(get_ticket_queue),
):
    """
    List tickets for the admin queue.

    ## Smart Ordering

    `sort=smart` orders by the cached urgency score computed every five minutes
    from nudge and reply history. Tickets never scored yet rank with urgency 0.

    ## Regular Sorting

    - `/api/admin/tickets?status=pending_assign` - Only unassigned-status tickets
    - `/api/admin/tickets?assigned_to=7&unassigned=true` - Mine plus unassigned
    - `/api/admin/tickets?sort=created_at&order=asc` - Oldest first

    Unknown sort or order values fall back to `updated_at` / `desc`.
    """
    sort_mode = TicketSort.parse(sort)
    direction = SortDirection.parse(order)
    filters = TicketListFilters(
        statuses=status or [],
        assigned_to_uids=assigned_to or [],
        unassigned=unassigned,
        query=q.strip() if q and q.strip() else None,
    )

    tickets = await queue.list(filters, sort_mode, direction)
    return TicketListResponse(tickets=tickets, total=len(tickets), sort=sort_mode, order=direction)


@router.get("/tickets/{ticket_id}/smart-score", response_model=ScoreRow)
async def get_smart_score(ticket_id: str, ranker: TicketRanker = Depends(get_ranker)):
    """
    Cached smart sort score for one ticket.

    Returns 404 when the ticket was never scored, is closed, or its score is
    stale under the configured TTL.
    """
    score = await ranker.score_for(ticket_id)
    if score is None:
        raise NotFoundError(resource="Smart score", identifier=ticket_id)
    return score


@router.get("/tickets/{ticket_id}/score-breakdown")
async def get_score_breakdown(ticket_id: str, queue: AdminTicketQueue = Depends(get_ticket_queue)):
    """
    Get detailed smart sort score breakdown for a ticket.

    Returns the weighted urgency components, the raw urgency, the customer-load
    penalty, and the final scores, computed from the ticket's current nudge and
    reply history.

    Useful for:
    - Understanding queue order
    - Tuning weights
    """
    breakdown = await queue.score_breakdown(ticket_id)
    if breakdown is None:
        raise NotFoundError(resource="Ticket", identifier=ticket_id)
    return breakdown


@router.post("/smart-sort/recompute", response_model=RecomputeResult)
async def recompute_now(coordinator: RecomputeCoordinator = Depends(get_coordinator)):
    """
    Recompute every open ticket's smart sort score now.

    Joins the pass already in flight, if any.
    """
    result = await coordinator.recompute()
    logger.info(
        "smart_sort_recompute_requested",
        open_tickets=result.open_tickets,
        upserted_rows=result.upserted_rows,
    )
    return result
