# tasks/dispatcher.py

import asyncio
import traceback
from datetime import datetime
from typing import Awaitable, Callable, Optional, Set

from lexum.logging_config import setup_logger

logger = setup_logger(__name__, "dispatch.log")


class EventDispatcher:
    """
    Fire-and-forget runner for side writes (event logs, quota counters, skill updates).

    Best-effort, no delivery guarantee: a failed job is logged and counted, never
    raised into the request that dispatched it. Jobs still pending at shutdown are
    given `drain_timeout` seconds to finish.
    """

    def __init__(self, drain_timeout: float = 10.0):
        self.drain_timeout = drain_timeout
        self._pending: Set[asyncio.Task] = set()
        self._shutdown = False
        self.started_at: Optional[datetime] = None
        self.last_failure: Optional[str] = None
        self.dispatched: int = 0
        self.succeeded: int = 0
        self.failed: int = 0

    def start(self):
        self._shutdown = False
        self.started_at = datetime.now()
        logger.info(f"🚀 Event dispatcher started at {self.started_at.strftime('%Y-%m-%d %H:%M:%S')}")

    def dispatch(self, label: str, coro_factory: Callable[[], Awaitable]) -> Optional[asyncio.Task]:
        """Schedule `coro_factory()` and return immediately."""
        if self._shutdown:
            logger.warning(f"⚠️ Dispatcher is shut down, dropping job '{label}'")
            return None

        try:
            task = asyncio.create_task(self._run(label, coro_factory))
        except Exception as e:
            self.failed += 1
            self.last_failure = f"{label}: {e}"
            logger.error(f"❌ Could not schedule job '{label}': {e}")
            return None

        self.dispatched += 1
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, label: str, coro_factory: Callable[[], Awaitable]):
        try:
            await coro_factory()
            self.succeeded += 1
        except asyncio.CancelledError:
            logger.warning(f"🛑 Job '{label}' cancelled")
            raise
        except Exception as e:
            self.failed += 1
            self.last_failure = f"{label}: {e}"
            logger.error(f"❌ Job '{label}' failed: {e}")
            logger.error(traceback.format_exc())

    async def drain(self):
        """Stop accepting jobs and wait for pending ones; cancel stragglers."""
        self._shutdown = True
        if not self._pending:
            logger.info("⏹️ Event dispatcher stopped, nothing pending")
            return

        pending = list(self._pending)
        logger.info(f"⏳ Draining {len(pending)} pending job(s)...")
        done, not_done = await asyncio.wait(pending, timeout=self.drain_timeout)

        for task in not_done:
            task.cancel()
        if not_done:
            await asyncio.gather(*not_done, return_exceptions=True)
            logger.warning(f"⚠️ Cancelled {len(not_done)} job(s) still running at shutdown")

        logger.info(f"⏹️ Event dispatcher stopped ({len(done)} job(s) drained)")

    def get_status(self) -> dict:
        return {
            "running": not self._shutdown,
            "started_at": self.started_at.strftime('%Y-%m-%d %H:%M:%S') if self.started_at else None,
            "pending": len(self._pending),
            "dispatched": self.dispatched,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "last_failure": self.last_failure,
        }


# Global instance
dispatcher = EventDispatcher()
