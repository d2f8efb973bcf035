import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from flightwatch.exceptions import AlertNotFoundError
from flightwatch.models import MonitoringJob, PriceAlert

logger = logging.getLogger(__name__)


class AlertService:
    def __init__(self, db: Session):
        self.db = db

    def list_alerts(
        self,
        is_read: Optional[bool] = None,
        job_id: Optional[str] = None,
    ) -> List[Tuple[PriceAlert, MonitoringJob]]:
        """Alerts newest first, each paired with the job it belongs to."""
        query = self.db.query(PriceAlert, MonitoringJob).join(
            MonitoringJob, PriceAlert.monitoring_job_id == MonitoringJob.id
        )
        if is_read is not None:
            query = query.filter(PriceAlert.is_read == is_read)
        if job_id:
            query = query.filter(PriceAlert.monitoring_job_id == job_id)
        return [tuple(row) for row in query.order_by(PriceAlert.created_at.desc()).all()]

    def mark_read(self, alert_id: str) -> PriceAlert:
        alert = self.db.query(PriceAlert).filter(PriceAlert.id == alert_id).first()
        if not alert:
            raise AlertNotFoundError(alert_id)
        alert.is_read = True
        self.db.commit()
        self.db.refresh(alert)
        logger.info(f"Marked alert {alert_id} as read")
        return alert
