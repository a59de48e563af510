"""
Smart Sort: Scheduler

Periodically triggers the recompute coordinator for the lifetime of the
process: once shortly after start-up, then every five minutes.

The scheduler is inert when the ticket store is not configured (no
coordinator) or when disabled via SMART_SORT_CRON_ENABLED=false. Calling
start() more than once never creates a second job.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from smartqueue.middleware.logging_config import get_logger, log_with_context
from smartqueue.services.recompute import RecomputeCoordinator

logger = get_logger(__name__)

JOB_ID = "smart_sort_recompute"
DEFAULT_INTERVAL_SECONDS = 5 * 60


class SmartSortScheduler:
    """Owns the periodic recompute job and its started flag."""

    def __init__(
        self,
        coordinator: Optional[RecomputeCoordinator],
        enabled: bool = True,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        initial_delay_seconds: float = 0.0,
    ):
        self.coordinator = coordinator
        self.enabled = enabled
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._started = False

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def tick(self) -> None:
        """One scheduled run. Errors are logged and swallowed to keep the job alive."""
        if self.coordinator is None:
            return
        log_with_context(job_id=JOB_ID)
        try:
            result = await self.coordinator.recompute()
        except Exception as e:
            logger.error(
                "smart_sort_tick_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return
        logger.info(
            "smart_sort_tick_completed",
            open_tickets=result.open_tickets,
            upserted_rows=result.upserted_rows,
        )

    def start(self) -> bool:
        """
        Start the periodic job. Must be called from a running event loop.

        Returns True if this call started the scheduler.
        """
        if self.coordinator is None:
            logger.info("smart_sort_scheduler_skipped", reason="ticket store not configured")
            return False
        if self._started:
            return False
        self._started = True

        if not self.enabled:
            logger.info("smart_sort_scheduler_disabled", reason="SMART_SORT_CRON_ENABLED=false")
            return False

        first_run = datetime.now(timezone.utc) + timedelta(seconds=self.initial_delay_seconds)
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            self.tick,
            "interval",
            seconds=self.interval_seconds,
            next_run_time=first_run,
            id=JOB_ID,
            name="Smart sort score recompute",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            "smart_sort_scheduler_started",
            interval_seconds=self.interval_seconds,
            first_run=first_run.isoformat(),
        )
        return True

    def shutdown(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("smart_sort_scheduler_stopped")
        self._scheduler = None
