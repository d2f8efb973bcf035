from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, ForeignKey, Index
from sqlalchemy.orm import relationship

from flightwatch.database import Base
from flightwatch.models.monitoring_job import new_id
from flightwatch.utils import utcnow


class PriceHistory(Base):
    """
    One observed price for one flight offer, recorded by a check of a job.

    Rows are append-only. Every row written by the same check shares the
    same recorded_at, which is what groups them into a snapshot.
    """
    __tablename__ = "price_history"

    id = Column(String(32), primary_key=True, default=new_id)

    monitoring_job_id = Column(
        String(32),
        ForeignKey("monitoring_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Provider offer id; only stable across searches if the provider says so
    flight_id = Column(String(64), nullable=False)

    airline = Column(String(100), nullable=False)
    airline_code = Column(String(3), nullable=False)
    flight_number = Column(String(10), nullable=False)
    departure_time = Column(String(25), nullable=False)  # Provider local time, ISO 8601
    arrival_time = Column(String(25), nullable=False)
    duration = Column(String(20), nullable=False)  # e.g. "11h 5m"
    stops = Column(Integer, default=0, nullable=False)

    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    recorded_at = Column(DateTime, default=utcnow, nullable=False)
    booking_date = Column(Date, nullable=False)  # Day the check ran
    travel_date = Column(Date, nullable=False)  # Day the flight departs

    monitoring_job = relationship("MonitoringJob", back_populates="price_history")

    __table_args__ = (
        Index("ix_price_history_job_recorded", "monitoring_job_id", "recorded_at"),
        Index("ix_price_history_travel_airline", "travel_date", "airline_code"),
    )

    @property
    def fingerprint(self) -> str:
        return f"{self.flight_number}@{self.departure_time}"

    def __repr__(self) -> str:
        return f"<PriceHistory {self.flight_number}: {self.price} {self.currency} at {self.recorded_at}>"
