"""
APScheduler-driven price watch.

A single cron job fires the sweep that re-checks every active monitoring
job. Two cadences exist: "test" (every minute) and "production" (every
six hours). At most one sweep runs at a time; ticks arriving while one is
in progress are skipped, as are manual runs.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from flightwatch.config import SCHEDULER_MODES, get_settings
from flightwatch.database import SessionLocal, check_database
from flightwatch.exceptions import StoreUnavailableError
from flightwatch.services.job_registry import JobRegistry
from flightwatch.services.price_check import PriceCheckService
from flightwatch.utils import utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

SWEEP_JOB_ID = "price_watch_sweep"

SCHEDULER_CONFIG = {
    "test": {
        "cron": "*/1 * * * *",
        "interval_minutes": 1,
        "description": "Every 1 minute (testing mode)",
    },
    "production": {
        "cron": "0 */6 * * *",
        "interval_minutes": 360,
        "description": "Every 6 hours (00:00, 06:00, 12:00, 18:00)",
    },
}


@dataclass
class SweepResult:
    started_at: datetime
    finished_at: Optional[datetime] = None
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    job_order: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": dict(self.errors),
        }


class PriceWatchScheduler:
    def __init__(
        self,
        checker: PriceCheckService,
        session_factory: Callable[[], Session] = SessionLocal,
        mode: Optional[str] = None,
        throttle_seconds: Optional[float] = None,
        timezone: Optional[str] = None,
        store_probe: Callable[[Callable[[], Session]], None] = check_database,
    ):
        self.checker = checker
        self.session_factory = session_factory
        self._mode = mode or settings.scheduler_mode
        if self._mode not in SCHEDULER_MODES:
            raise ValueError(f"Unknown scheduler mode: {self._mode}")
        self.throttle_seconds = (
            throttle_seconds if throttle_seconds is not None else settings.check_throttle_seconds
        )
        self.timezone = timezone or settings.scheduler_timezone
        self._store_probe = store_probe

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._sweep_task: Optional[asyncio.Task] = None

        self.sweeps_completed = 0
        self.ticks_skipped = 0
        self.last_sweep: Optional[SweepResult] = None

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def is_scheduled(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def is_running(self) -> bool:
        return self._is_running

    def _trigger(self, mode: str) -> CronTrigger:
        return CronTrigger.from_crontab(SCHEDULER_CONFIG[mode]["cron"], timezone=self.timezone)

    def start(self) -> None:
        """Arm the cron timer. Refuses to arm against an unreachable database."""
        if self.is_scheduled:
            logger.warning("Scheduler already running")
            return

        try:
            self._store_probe(self.session_factory)
        except Exception as e:
            logger.error(f"❌ Database unreachable, scheduler not started: {e}")
            raise StoreUnavailableError(f"Database unreachable: {e}") from e

        config = SCHEDULER_CONFIG[self._mode]
        self._scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            timezone=self.timezone,
        )
        self._scheduler.add_job(
            self._on_tick,
            trigger=self._trigger(self._mode),
            id=SWEEP_JOB_ID,
            name="Price watch sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"✅ Scheduler started - {config['description']}")
        logger.info(f"Next price watch sweep: {self.next_run_time}")

    def stop(self) -> None:
        """Disarm the timer. A sweep already in progress runs to completion."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self._scheduler = None

    @property
    def next_run_time(self) -> Optional[datetime]:
        if not self.is_scheduled:
            return None
        job = self._scheduler.get_job(SWEEP_JOB_ID)
        return job.next_run_time if job else None

    async def _on_tick(self) -> None:
        logger.info("⏰ Scheduled price monitoring check triggered")
        # Detached so scheduler shutdown never cancels a sweep in progress
        self._sweep_task = asyncio.create_task(self.run_sweep())

    async def run_sweep(self) -> Optional[SweepResult]:
        """
        Check every active job once, stalest first, one at a time.

        Returns None without doing anything when a sweep is already running.
        A failing job is logged and counted; the sweep moves on to the next
        one after the usual throttle delay.
        """
        if self._is_running:
            self.ticks_skipped += 1
            logger.info("Price check already in progress, skipping")
            return None

        self._is_running = True
        result = SweepResult(started_at=utcnow())
        db = self.session_factory()
        try:
            jobs = JobRegistry(db).get_active()
            job_ids = [job.id for job in jobs]
            result.total = len(jobs)

            if not jobs:
                logger.info("No active monitoring jobs to check")
            else:
                logger.info(f"Starting price checks for {len(jobs)} active job(s)")

            for index, (job_id, job) in enumerate(zip(job_ids, jobs)):
                result.job_order.append(job_id)
                try:
                    check = await self.checker.check_job(db, job)
                    result.succeeded += 1
                    logger.info(
                        f"✅ Job {job_id} checked: {check.flights_found} flights, "
                        f"{check.alerts_created} new alerts"
                    )
                except Exception as e:
                    db.rollback()
                    result.failed += 1
                    result.errors[job_id] = str(e)
                    logger.error(f"❌ Failed to check job {job_id}: {e}")

                if index < len(jobs) - 1:
                    await asyncio.sleep(self.throttle_seconds)

        except Exception as e:
            logger.error(f"Error during scheduled price checks: {e}")
            result.errors["sweep"] = str(e)

        finally:
            db.close()
            result.finished_at = utcnow()
            self.last_sweep = result
            self.sweeps_completed += 1
            self._is_running = False

        logger.info(
            f"Price check completed: {result.succeeded} succeeded, "
            f"{result.failed} failed out of {result.total} total"
        )
        return result

    def set_mode(self, mode: str) -> bool:
        """
        Switch cadence. Returns False when already in that mode.

        An armed scheduler keeps its job and only swaps the trigger, so the
        change takes effect at the next fire time of the new cadence.
        """
        if mode not in SCHEDULER_CONFIG:
            raise ValueError(f"Invalid mode: {mode}. Must be one of {', '.join(SCHEDULER_MODES)}")
        if mode == self._mode:
            logger.info(f"Scheduler already in {mode} mode")
            return False

        logger.info(f"Changing scheduler mode from {self._mode} to {mode}")
        self._mode = mode
        if self.is_scheduled:
            self._scheduler.reschedule_job(SWEEP_JOB_ID, trigger=self._trigger(mode))
            logger.info(f"Next price watch sweep: {self.next_run_time}")

        logger.info(f"✅ Scheduler mode changed to {mode}")
        return True

    def get_status(self) -> Dict[str, Any]:
        config = SCHEDULER_CONFIG[self._mode]
        next_run = self.next_run_time
        return {
            "mode": self._mode,
            "schedule": config["description"],
            "cron": config["cron"],
            "interval_minutes": config["interval_minutes"],
            "is_scheduled": self.is_scheduled,
            "is_running": self._is_running,
            "next_run_time": next_run.isoformat() if next_run else None,
            "sweeps_completed": self.sweeps_completed,
            "ticks_skipped": self.ticks_skipped,
            "last_sweep": self.last_sweep.to_dict() if self.last_sweep else None,
        }
