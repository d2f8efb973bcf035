"""
Monitoring job registry: CRUD over MonitoringJob rows.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from flightwatch.config import get_settings
from flightwatch.exceptions import JobNotFoundError
from flightwatch.models import MonitoringJob, PriceAlert, PriceHistory, TravelClass
from flightwatch.models.monitoring_job import DEFAULT_CHECK_INTERVAL_HOURS
from flightwatch.utils import utcnow

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class JobDetail:
    job: MonitoringJob
    price_history: List[PriceHistory]
    price_alerts: List[PriceAlert]


class JobRegistry:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        return_date: Optional[date] = None,
        adults: int = 1,
        travel_class: Optional[TravelClass] = None,
        airlines: Optional[List[str]] = None,
    ) -> MonitoringJob:
        job = MonitoringJob(
            origin=origin.upper(),
            destination=destination.upper(),
            departure_date=departure_date,
            return_date=return_date,
            adults=adults,
            travel_class=travel_class or TravelClass.ECONOMY,
            airlines=[code.upper() for code in airlines] if airlines else None,
            is_active=True,
            check_interval_hours=DEFAULT_CHECK_INTERVAL_HOURS,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        logger.info(f"Created monitoring job {job.id}: {job.display_name}")
        return job

    def list_jobs(self, is_active: Optional[bool] = None) -> List[MonitoringJob]:
        """All jobs, newest first, optionally filtered by active flag."""
        query = self.db.query(MonitoringJob)
        if is_active is not None:
            query = query.filter(MonitoringJob.is_active == is_active)
        return query.order_by(MonitoringJob.created_at.desc()).all()

    def get_active(self) -> List[MonitoringJob]:
        """
        Active jobs, stalest first.

        Never-checked jobs come before every checked one, then the job
        checked longest ago. This order is what keeps a sweep fair when
        it runs out of time or provider quota part way through.
        """
        return (
            self.db.query(MonitoringJob)
            .filter(MonitoringJob.is_active == True)
            .order_by(
                MonitoringJob.last_checked_at.asc().nulls_first(),
                MonitoringJob.created_at.asc(),
            )
            .all()
        )

    def get(self, job_id: str) -> MonitoringJob:
        job = self.db.query(MonitoringJob).filter(MonitoringJob.id == job_id).first()
        if not job:
            raise JobNotFoundError(job_id)
        return job

    def recent_history(self, job_id: str, limit: int) -> List[PriceHistory]:
        return (
            self.db.query(PriceHistory)
            .filter(PriceHistory.monitoring_job_id == job_id)
            .order_by(PriceHistory.recorded_at.desc(), PriceHistory.price.asc())
            .limit(limit)
            .all()
        )

    def recent_alerts(
        self, job_id: str, limit: Optional[int] = None, unread_only: bool = False
    ) -> List[PriceAlert]:
        query = self.db.query(PriceAlert).filter(PriceAlert.monitoring_job_id == job_id)
        if unread_only:
            query = query.filter(PriceAlert.is_read == False)
        query = query.order_by(PriceAlert.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_detail(
        self,
        job_id: str,
        history_limit: Optional[int] = None,
        alert_limit: Optional[int] = None,
    ) -> JobDetail:
        """The job with its most recent history rows and alerts, newest first."""
        job = self.get(job_id)
        return JobDetail(
            job=job,
            price_history=self.recent_history(
                job_id, history_limit or settings.job_detail_history_limit
            ),
            price_alerts=self.recent_alerts(
                job_id, alert_limit or settings.job_detail_alert_limit
            ),
        )

    def deactivate(self, job_id: str) -> MonitoringJob:
        job = self.get(job_id)
        job.is_active = False
        self.db.commit()
        self.db.refresh(job)
        logger.info(f"Deactivated monitoring job {job_id}")
        return job

    def delete(self, job_id: str) -> None:
        """
        Remove a job together with its history and alerts in one transaction.

        Child rows are deleted explicitly rather than left to the foreign
        key cascade, so the outcome does not depend on the backend
        enforcing ON DELETE CASCADE.
        """
        job = self.get(job_id)
        try:
            history_count = (
                self.db.query(PriceHistory)
                .filter(PriceHistory.monitoring_job_id == job_id)
                .delete(synchronize_session=False)
            )
            alert_count = (
                self.db.query(PriceAlert)
                .filter(PriceAlert.monitoring_job_id == job_id)
                .delete(synchronize_session=False)
            )
            self.db.expire(job, ["price_history", "price_alerts"])
            self.db.delete(job)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"❌ Failed to delete monitoring job {job_id}, rolled back")
            raise

        logger.info(
            f"Deleted monitoring job {job_id} "
            f"({history_count} history rows, {alert_count} alerts)"
        )

    def touch_last_checked(self, job_id: str) -> MonitoringJob:
        job = self.get(job_id)
        job.last_checked_at = utcnow()
        self.db.commit()
        return job
