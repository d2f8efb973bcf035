import enum
import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, JSON, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from flightwatch.database import Base
from flightwatch.utils import utcnow

DEFAULT_CHECK_INTERVAL_HOURS = 6


class TravelClass(str, enum.Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


def new_id() -> str:
    return uuid.uuid4().hex


class MonitoringJob(Base):
    """
    A persisted route watch: what to search, and whether the scheduler
    should keep re-checking it.

    Price history and alerts reference the job by id only; deleting a job
    removes both.
    """
    __tablename__ = "monitoring_jobs"

    id = Column(String(32), primary_key=True, default=new_id)

    # Route
    origin = Column(String(3), nullable=False)  # IATA code
    destination = Column(String(3), nullable=False)  # IATA code
    departure_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)  # Null for one-way

    adults = Column(Integer, default=1, nullable=False)
    travel_class = Column(SQLEnum(TravelClass), default=TravelClass.ECONOMY, nullable=False)
    airlines = Column(JSON, nullable=True)  # List of IATA carrier codes, or null for any

    # Lifecycle
    is_active = Column(Boolean, default=True, nullable=False)
    check_interval_hours = Column(Integer, default=DEFAULT_CHECK_INTERVAL_HOURS, nullable=False)
    last_checked_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    price_history = relationship(
        "PriceHistory",
        back_populates="monitoring_job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    price_alerts = relationship(
        "PriceAlert",
        back_populates="monitoring_job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_monitoring_jobs_active_last_checked", "is_active", "last_checked_at"),
        Index("ix_monitoring_jobs_route", "origin", "destination", "departure_date"),
    )

    @property
    def airline_codes(self) -> list[str]:
        return list(self.airlines or [])

    @property
    def display_name(self) -> str:
        route = f"{self.origin} → {self.destination} on {self.departure_date}"
        if self.return_date:
            route += f" (return {self.return_date})"
        return route

    def __repr__(self) -> str:
        return f"<MonitoringJob {self.id}: {self.display_name}>"
