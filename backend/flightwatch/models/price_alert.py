import enum

from sqlalchemy import Column, String, Boolean, DateTime, Float, Numeric, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship

from flightwatch.database import Base
from flightwatch.models.monitoring_job import new_id
from flightwatch.utils import utcnow


class AlertType(str, enum.Enum):
    PRICE_DROP = "PRICE_DROP"


class PriceAlert(Base):
    __tablename__ = "price_alerts"

    id = Column(String(32), primary_key=True, default=new_id)
    monitoring_job_id = Column(
        String(32),
        ForeignKey("monitoring_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    alert_type = Column(String(20), default=AlertType.PRICE_DROP.value, nullable=False)

    old_price = Column(Numeric(10, 2), nullable=False)  # First observed
    new_price = Column(Numeric(10, 2), nullable=False)  # Most recent observed
    percentage_change = Column(Float, nullable=False)  # Negative = drop

    # Descriptive snapshot of the flight when the alert fired
    flight_details = Column(JSON, nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    monitoring_job = relationship("MonitoringJob", back_populates="price_alerts")

    __table_args__ = (
        Index("ix_price_alerts_job_read", "monitoring_job_id", "is_read"),
        Index("ix_price_alerts_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PriceAlert {self.id}: {self.old_price} -> {self.new_price} ({self.percentage_change:.1f}%)>"
