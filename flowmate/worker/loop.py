"""
Worker Loop - runs scheduled jobs on fixed intervals.

Each job runs in a worker thread (jobs are synchronous and spend their time
in network calls). A failing job is logged and retried at its next tick; it
never stops the loop. Stale OAuth state rows are purged once per hour.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from flowmate.server.services import Services
from .jobs import build_job

logger = logging.getLogger("flowmate.worker")

TICK_INTERVAL = float(os.environ.get("WORKER_TICK_INTERVAL", "5"))
STATE_PURGE_INTERVAL = 3600


@dataclass
class ScheduledJob:
    name: str
    interval_seconds: float
    next_run: float = 0.0


def default_schedule() -> List[ScheduledJob]:
    return [
        ScheduledJob("reply-to-tweets", float(os.environ.get("REPLY_JOB_INTERVAL_MINUTES", "60")) * 60),
        ScheduledJob("post-tweets", float(os.environ.get("POST_JOB_INTERVAL_MINUTES", "240")) * 60),
    ]


class WorkerLoop:
    """
    Main worker loop.

    Usage:
        worker = WorkerLoop(services)
        await worker.run()  # Runs until stopped
        worker.stop()       # Signal to stop
    """

    def __init__(self, services: Services, schedule: Optional[List[ScheduledJob]] = None):
        self.services = services
        self.schedule = schedule if schedule is not None else default_schedule()
        self._running = True
        self._last_purge = 0.0

    def stop(self):
        """Signal worker to stop gracefully."""
        logger.info("Stop requested")
        self._running = False

    def run_job(self, name: str, params: Optional[Dict] = None) -> Dict:
        """Run one job synchronously and return its summary."""
        s = self.services
        job = build_job(name, s.db, s.executor, s.oauth)
        started = time.monotonic()
        summary = job.run(params)
        logger.info(
            f"[JOB] {name} finished in {time.monotonic() - started:.1f}s: {summary.get('status')}"
        )
        return summary

    async def _run_scheduled(self, scheduled: ScheduledJob) -> None:
        try:
            await asyncio.to_thread(self.run_job, scheduled.name)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"[JOB] {scheduled.name} crashed: {e}")

    async def run(self):
        """Run until stop() is called."""
        intervals = ", ".join(f"{j.name}={j.interval_seconds:.0f}s" for j in self.schedule)
        logger.info(f"Worker starting ({intervals})")

        while self._running:
            try:
                now = time.monotonic()
                for scheduled in self.schedule:
                    if not self._running:
                        break
                    if now >= scheduled.next_run:
                        scheduled.next_run = now + scheduled.interval_seconds
                        await self._run_scheduled(scheduled)

                if now - self._last_purge >= STATE_PURGE_INTERVAL:
                    self._last_purge = now
                    await asyncio.to_thread(self.services.oauth.purge_states)

                await asyncio.sleep(TICK_INTERVAL)

            except asyncio.CancelledError:
                logger.info("Worker loop cancelled")
                break
            except Exception as e:
                logger.exception(f"Error in worker loop: {e}")
                await asyncio.sleep(TICK_INTERVAL)

        logger.info("Worker stopped")
