"""
Append-only price history for monitoring jobs.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from flightwatch.config import get_settings
from flightwatch.models import PriceHistory
from flightwatch.services.normalizer import Flight
from flightwatch.utils import travel_date_of, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()


class PriceLedger:
    def __init__(self, db: Session, retention: Optional[int] = None):
        self.db = db
        self.retention = retention if retention is not None else settings.snapshot_retention

    def select_cheapest(self, flights: List[Flight]) -> List[Flight]:
        """The ``retention`` cheapest flights; ties keep their incoming order."""
        return sorted(flights, key=lambda f: f.price)[: self.retention]

    def record_snapshot(
        self,
        job_id: str,
        flights: List[Flight],
        recorded_at: Optional[datetime] = None,
    ) -> List[PriceHistory]:
        """
        Store the cheapest flights of one check as a single snapshot.

        Every row shares one recorded_at and booking_date. The rows are
        committed together or not at all. Flights without a positive price
        are dropped before selection since a drop percentage cannot be
        computed against them.
        """
        usable = [f for f in flights if f.price is not None and f.price > 0]
        if len(usable) < len(flights):
            logger.warning(
                f"Job {job_id}: ignoring {len(flights) - len(usable)} flights with non-positive price"
            )

        if not usable:
            logger.info(f"No flights to record for job {job_id}")
            return []

        recorded_at = recorded_at or utcnow()
        booking_date = recorded_at.date()

        entries = []
        for flight in self.select_cheapest(usable):
            entries.append(PriceHistory(
                monitoring_job_id=job_id,
                flight_id=flight.id,
                airline=flight.airline,
                airline_code=flight.airline_code,
                flight_number=flight.flight_number,
                departure_time=flight.departure.time,
                arrival_time=flight.arrival.time,
                duration=flight.duration,
                stops=flight.stops,
                price=flight.price,
                currency=flight.currency,
                recorded_at=recorded_at,
                booking_date=booking_date,
                travel_date=travel_date_of(flight.departure.time) or booking_date,
            ))

        try:
            self.db.add_all(entries)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"❌ Failed to record price snapshot for job {job_id}")
            raise

        logger.info(f"Recorded {len(entries)} price entries for job {job_id}")
        return entries

    def get_history(
        self,
        job_id: str,
        limit: Optional[int] = None,
        newest_first: bool = False,
    ) -> List[PriceHistory]:
        """
        History rows for a job, oldest first by default.

        Rows of one snapshot are ordered cheapest first. With ``limit`` and
        ``newest_first`` this returns the most recent N rows.
        """
        recorded = PriceHistory.recorded_at.desc() if newest_first else PriceHistory.recorded_at.asc()
        query = (
            self.db.query(PriceHistory)
            .filter(PriceHistory.monitoring_job_id == job_id)
            .order_by(recorded, PriceHistory.price.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()
