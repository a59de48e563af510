"""
Tests for the periodic smart sort scheduler.
"""

import asyncio

import pytest

from smartqueue.core.exceptions import TicketStoreError
from smartqueue.services.recompute import RecomputeCoordinator
from smartqueue.services.scheduler import JOB_ID, SmartSortScheduler

from tests.conftest import ago


@pytest.fixture
def coordinator(store):
    return RecomputeCoordinator(store)


class TestStart:
    """Test scheduler start-up rules"""

    @pytest.mark.asyncio
    async def test_start_schedules_one_job(self, coordinator):
        scheduler = SmartSortScheduler(coordinator, initial_delay_seconds=60)
        try:
            assert scheduler.start() is True
            assert scheduler.running is True

            jobs = scheduler._scheduler.get_jobs()
            assert [job.id for job in jobs] == [JOB_ID]
            assert jobs[0].trigger.interval.total_seconds() == 300
        finally:
            scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, coordinator):
        scheduler = SmartSortScheduler(coordinator, initial_delay_seconds=60)
        try:
            assert scheduler.start() is True
            assert scheduler.start() is False
            assert len(scheduler._scheduler.get_jobs()) == 1
        finally:
            scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_absent_store_is_a_no_op(self):
        scheduler = SmartSortScheduler(None)

        assert scheduler.start() is False
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_disabled_never_starts(self, coordinator):
        scheduler = SmartSortScheduler(coordinator, enabled=False)

        assert scheduler.start() is False
        assert scheduler.start() is False
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_shutdown_stops_job(self, coordinator):
        scheduler = SmartSortScheduler(coordinator, initial_delay_seconds=60)
        scheduler.start()

        scheduler.shutdown()

        assert scheduler.running is False
        assert scheduler.start() is False

    @pytest.mark.asyncio
    async def test_first_run_happens_after_initial_delay(self, store, coordinator):
        store.add_ticket("a", created_at=ago(hours=1))
        scheduler = SmartSortScheduler(coordinator, initial_delay_seconds=0.0)
        try:
            scheduler.start()
            for _ in range(50):
                if "a" in store.scores:
                    break
                await asyncio.sleep(0.05)
        finally:
            scheduler.shutdown()

        assert "a" in store.scores


class TestTick:
    """Test one scheduled run"""

    @pytest.mark.asyncio
    async def test_tick_recomputes(self, store, coordinator):
        store.add_ticket("a", created_at=ago(hours=1))

        await SmartSortScheduler(coordinator).tick()

        assert "a" in store.scores

    @pytest.mark.asyncio
    async def test_tick_swallows_errors(self, store, coordinator):
        store.add_ticket("a", created_at=ago(hours=1))
        store.failures["fetch_open_tickets"] = TicketStoreError("fetch_open_tickets", "Failed to read open tickets: down")

        await SmartSortScheduler(coordinator).tick()

        assert store.calls["fetch_open_tickets"] == 1
        assert coordinator.in_flight is False

    @pytest.mark.asyncio
    async def test_tick_without_coordinator(self):
        assert await SmartSortScheduler(None).tick() is None
