"""
Smart Sort: Recompute Coordinator

Runs one full scoring pass over every open ticket and persists the results.

At most one pass runs at a time. A caller arriving while a pass is in flight
joins it and receives the same result (or the same error) instead of starting
a second pass.
"""
import asyncio
import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from smartqueue.core.exceptions import RecomputeTimeoutError
from smartqueue.core.utils import chunked, utcnow
from smartqueue.middleware.logging_config import get_logger
from smartqueue.models.schemas import RecomputeResult, ScoreRow
from smartqueue.services.scoring_service import ScoringService, scoring_service
from smartqueue.services.signals import DEFAULT_IN_CHUNK_SIZE, SignalAggregator
from smartqueue.store.base import TicketStore

logger = get_logger(__name__)

DEFAULT_UPSERT_CHUNK_SIZE = 200

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    Share one execution of a coroutine among concurrent callers.

    The slot is either idle or holds the task of the running execution. The
    check-and-set happens without an intervening await, which makes it atomic
    on a single event loop. The slot is cleared when the task finishes,
    whether it succeeded, failed, or timed out.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    async def cancel(self) -> None:
        """Cancel the running execution, if any, and wait until it has stopped."""
        task = self._task
        if task is None:
            return
        task.cancel()
        await asyncio.wait([task])
        # A task cancelled before its first step never reaches the finally below
        if self._task is task:
            self._task = None

    async def run(self, work: Callable[[], Awaitable[T]]) -> T:
        task = self._task
        if task is None:
            task = asyncio.ensure_future(self._execute(work))
            self._task = task
        else:
            logger.info("smart_sort_recompute_joined")
        # A cancelled caller must not cancel the shared execution
        return await asyncio.shield(task)

    async def _execute(self, work: Callable[[], Awaitable[T]]) -> T:
        try:
            if self.timeout is None:
                return await work()
            try:
                return await asyncio.wait_for(work(), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise RecomputeTimeoutError(self.timeout) from e
        finally:
            self._task = None


class RecomputeCoordinator:
    """
    Orchestrates smart sort recomputation.

    Constructed once per process around a configured ticket store and shared
    by the scheduler and the request handlers.
    """

    def __init__(
        self,
        store: TicketStore,
        scoring: ScoringService = scoring_service,
        in_chunk_size: int = DEFAULT_IN_CHUNK_SIZE,
        upsert_chunk_size: int = DEFAULT_UPSERT_CHUNK_SIZE,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.scoring = scoring
        self.aggregator = SignalAggregator(store, chunk_size=in_chunk_size)
        self.upsert_chunk_size = upsert_chunk_size
        self._flight: SingleFlight[RecomputeResult] = SingleFlight(timeout=timeout)

    @property
    def in_flight(self) -> bool:
        return self._flight.in_flight

    async def recompute(self) -> RecomputeResult:
        """Run a pass, or join the one already running."""
        return await self._flight.run(self._recompute_once)

    async def aclose(self) -> None:
        """Stop a pass still in flight so nothing writes after shutdown."""
        if self._flight.in_flight:
            logger.info("smart_sort_recompute_cancelled")
        await self._flight.cancel()

    async def _recompute_once(self) -> RecomputeResult:
        computed_at = utcnow()
        now_ms = computed_at.timestamp() * 1000.0
        start = time.perf_counter()
        logger.info("smart_sort_recompute_started", computed_at=computed_at.isoformat())

        try:
            open_tickets = await self.store.fetch_open_tickets()
            if not open_tickets:
                logger.info("smart_sort_recompute_completed", open_tickets=0, upserted_rows=0)
                return RecomputeResult(computed_at=computed_at, open_tickets=0, upserted_rows=0)

            aggregated = await self.aggregator.aggregate(open_tickets)

            rows = []
            for ticket in open_tickets:
                score = self.scoring.calculate(
                    aggregated.for_ticket(ticket.id),
                    aggregated.open_count_for(ticket.creator_uid),
                    ticket.updated_at,
                    ticket.created_at,
                    now_ms,
                )
                rows.append(ScoreRow(
                    ticket_id=ticket.id,
                    urgency_score=score.urgency_score,
                    time_score=score.time_score,
                    computed_at=computed_at,
                ))

            upserted = 0
            for chunk in chunked(rows, self.upsert_chunk_size):
                await self.store.upsert_scores(chunk)
                upserted += len(chunk)
        except Exception as e:
            logger.error(
                "smart_sort_recompute_failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(time.perf_counter() - start, 3),
            )
            raise

        logger.info(
            "smart_sort_recompute_completed",
            open_tickets=len(open_tickets),
            upserted_rows=upserted,
            duration_seconds=round(time.perf_counter() - start, 3),
        )
        return RecomputeResult(computed_at=computed_at, open_tickets=len(open_tickets), upserted_rows=upserted)
