"""
Per-job price check: search, record, detect drops.

Used by the scheduler sweep and by the manual per-job check endpoint.
Both go through the same per-job lock, so one job is never checked
twice at the same time.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from flightwatch.database import SessionLocal
from flightwatch.models import MonitoringJob
from flightwatch.services.amadeus import AmadeusClient, FlightSearchCriteria
from flightwatch.services.drop_detector import DropDetector
from flightwatch.services.job_registry import JobRegistry
from flightwatch.services.normalizer import Flight, normalize_offers
from flightwatch.services.price_ledger import PriceLedger

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    job_id: str
    flights_found: int = 0
    entries_recorded: int = 0
    alerts_created: int = 0
    errors: List[str] = field(default_factory=list)


class PriceCheckService:
    def __init__(
        self,
        client: AmadeusClient,
        session_factory: Callable[[], Session] = SessionLocal,
        threshold_percent: Optional[float] = None,
        grouping_key: Optional[str] = None,
        retention: Optional[int] = None,
    ):
        self.client = client
        self.session_factory = session_factory
        self.threshold_percent = threshold_percent
        self.grouping_key = grouping_key
        self.retention = retention
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, job_id: str) -> asyncio.Lock:
        lock = self._locks.get(job_id)
        if lock is None:
            lock = self._locks[job_id] = asyncio.Lock()
        return lock

    def is_checking(self, job_id: str) -> bool:
        lock = self._locks.get(job_id)
        return lock is not None and lock.locked()

    async def _search(self, job: MonitoringJob) -> List[Flight]:
        criteria = FlightSearchCriteria.from_job(job)
        response = await self.client.search_flights(criteria)
        return normalize_offers(response)

    async def check_job(self, db: Session, job: MonitoringJob) -> CheckResult:
        """
        Run one full check of a job and stamp its last_checked_at.

        Provider and store errors propagate to the caller.
        """
        job_id = job.id
        async with self.lock_for(job_id):
            logger.info(f"Checking prices for job {job_id}: {job.display_name}")
            flights = await self._search(job)

            entries = PriceLedger(db, retention=self.retention).record_snapshot(job_id, flights)

            detector = DropDetector(
                db,
                threshold_percent=self.threshold_percent,
                grouping_key=self.grouping_key,
            )
            alerts = detector.check_for_price_drops(job_id)

            JobRegistry(db).touch_last_checked(job_id)

        return CheckResult(
            job_id=job_id,
            flights_found=len(flights),
            entries_recorded=len(entries),
            alerts_created=len(alerts),
            errors=list(detector.last_errors),
        )

    async def record_initial_snapshot(self, job_id: str) -> None:
        """
        Best-effort first snapshot for a newly created job.

        Runs in the background after the create request has returned, on
        its own session. Failures are only logged: the job exists either
        way and the next sweep picks it up, since last_checked_at is left
        untouched.
        """
        db = self.session_factory()
        try:
            job = JobRegistry(db).get(job_id)
            async with self.lock_for(job_id):
                flights = await self._search(job)
                PriceLedger(db, retention=self.retention).record_snapshot(job_id, flights)
            logger.info(f"✅ Initial snapshot recorded for job {job_id}")
        except Exception as e:
            logger.error(f"❌ Initial snapshot failed for job {job_id}: {e}")
        finally:
            db.close()
