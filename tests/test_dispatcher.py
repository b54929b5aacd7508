"""Tests for the best-effort side-write dispatcher."""

import asyncio

from lexum.tasks.dispatcher import EventDispatcher


class TestEventDispatcher:

    async def test_runs_job_and_counts_success(self):
        dispatcher = EventDispatcher()
        dispatcher.start()
        done = []

        async def job():
            done.append(1)

        task = dispatcher.dispatch("job", job)
        await task

        assert done == [1]
        status = dispatcher.get_status()
        assert status["dispatched"] == 1
        assert status["succeeded"] == 1
        assert status["failed"] == 0
        assert status["running"] is True

    async def test_failed_job_is_counted_not_raised(self):
        dispatcher = EventDispatcher()
        dispatcher.start()

        async def job():
            raise RuntimeError("db gone")

        task = dispatcher.dispatch("quota", job)
        await task

        status = dispatcher.get_status()
        assert status["failed"] == 1
        assert status["succeeded"] == 0
        assert "db gone" in status["last_failure"]

    async def test_dispatch_returns_before_job_finishes(self):
        dispatcher = EventDispatcher()
        dispatcher.start()
        release = asyncio.Event()

        async def job():
            await release.wait()

        task = dispatcher.dispatch("slow", job)
        assert not task.done()
        assert dispatcher.get_status()["pending"] == 1

        release.set()
        await task

    async def test_drain_waits_for_pending_jobs(self):
        dispatcher = EventDispatcher()
        dispatcher.start()
        done = []

        async def job():
            await asyncio.sleep(0.01)
            done.append(1)

        dispatcher.dispatch("a", job)
        dispatcher.dispatch("b", job)
        await dispatcher.drain()

        assert done == [1, 1]
        assert dispatcher.get_status()["succeeded"] == 2

    async def test_drain_cancels_stragglers(self):
        dispatcher = EventDispatcher(drain_timeout=0.01)
        dispatcher.start()

        async def job():
            await asyncio.sleep(10)

        task = dispatcher.dispatch("stuck", job)
        await dispatcher.drain()

        assert task.cancelled()
        assert dispatcher.get_status()["succeeded"] == 0

    async def test_jobs_after_shutdown_are_dropped(self):
        dispatcher = EventDispatcher()
        dispatcher.start()
        await dispatcher.drain()

        async def job():
            pass

        assert dispatcher.dispatch("late", job) is None
        assert dispatcher.get_status()["running"] is False
        assert dispatcher.get_status()["dispatched"] == 0
