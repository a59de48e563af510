"""
Process-wide wiring of the smart sort services.

Built once at start-up around an optional ticket store. When the store is
absent every service except the (inert) scheduler is None, and the API
reports the feature as unavailable.
"""
from dataclasses import dataclass
from typing import Optional

from smartqueue.core.config import Settings
from smartqueue.services.ranking import TicketRanker
from smartqueue.services.recompute import RecomputeCoordinator
from smartqueue.services.scheduler import SmartSortScheduler
from smartqueue.services.signals import SignalAggregator
from smartqueue.services.ticket_queue import AdminTicketQueue
from smartqueue.store.base import TicketStore


@dataclass
class SmartSortServices:
    store: Optional[TicketStore]
    coordinator: Optional[RecomputeCoordinator]
    ranker: Optional[TicketRanker]
    queue: Optional[AdminTicketQueue]
    scheduler: SmartSortScheduler


def build_services(store: Optional[TicketStore], settings: Settings) -> SmartSortServices:
    coordinator = ranker = queue = None
    if store is not None:
        coordinator = RecomputeCoordinator(
            store,
            in_chunk_size=settings.smart_sort_in_chunk_size,
            upsert_chunk_size=settings.smart_sort_upsert_chunk_size,
            timeout=settings.recompute_timeout,
        )
        ranker = TicketRanker(
            store,
            chunk_size=settings.smart_sort_in_chunk_size,
            score_ttl_seconds=settings.smart_sort_score_ttl_seconds,
        )
        queue = AdminTicketQueue(
            store,
            ranker,
            SignalAggregator(store, chunk_size=settings.smart_sort_in_chunk_size),
        )

    scheduler = SmartSortScheduler(
        coordinator,
        enabled=settings.smart_sort_cron_enabled,
        interval_seconds=settings.smart_sort_recompute_interval_seconds,
        initial_delay_seconds=settings.smart_sort_initial_delay_seconds,
    )
    return SmartSortServices(
        store=store,
        coordinator=coordinator,
        ranker=ranker,
        queue=queue,
        scheduler=scheduler,
    )
