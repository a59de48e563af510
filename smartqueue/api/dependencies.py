"""
API Dependencies

FastAPI dependencies resolving the smart sort services built at start-up.
"""
from fastapi import Request

from smartqueue.core.exceptions import StoreUnavailableError
from smartqueue.services.container import SmartSortServices
from smartqueue.services.ranking import TicketRanker
from smartqueue.services.recompute import RecomputeCoordinator
from smartqueue.services.ticket_queue import AdminTicketQueue


def get_services(request: Request) -> SmartSortServices:
    services = getattr(request.app.state, "smart_sort", None)
    if services is None:
        raise StoreUnavailableError("Smart sort services are not initialized")
    return services


def get_coordinator(request: Request) -> RecomputeCoordinator:
    """
    Recompute coordinator for on-demand triggers.

    Raises:
        StoreUnavailableError: the ticket store is not configured (503)
    """
    coordinator = get_services(request).coordinator
    if coordinator is None:
        raise StoreUnavailableError()
    return coordinator


def get_ranker(request: Request) -> TicketRanker:
    ranker = get_services(request).ranker
    if ranker is None:
        raise StoreUnavailableError()
    return ranker


def get_ticket_queue(request: Request) -> AdminTicketQueue:
    queue = get_services(request).queue
    if queue is None:
        raise StoreUnavailableError()
    return queue
