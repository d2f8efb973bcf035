"""
Reshape a job's price history into chart points, one per check.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from flightwatch.services.price_ledger import PriceLedger


@dataclass
class TrendFlight:
    flight_id: str
    airline: str
    flight_number: str
    price: Decimal
    currency: str


@dataclass
class TrendPoint:
    recorded_at: datetime
    flights: List[TrendFlight] = field(default_factory=list)


class TrendAggregator:
    def __init__(self, db: Session):
        self.ledger = PriceLedger(db)

    def get_trends(self, job_id: str) -> List[TrendPoint]:
        """
        One point per distinct recorded_at, oldest first.

        No averaging happens here: each point carries the flights stored
        by that check, cheapest first.
        """
        points: List[TrendPoint] = []
        for entry in self.ledger.get_history(job_id):
            if not points or points[-1].recorded_at != entry.recorded_at:
                points.append(TrendPoint(recorded_at=entry.recorded_at))
            points[-1].flights.append(TrendFlight(
                flight_id=entry.flight_id,
                airline=entry.airline,
                flight_number=entry.flight_number,
                price=entry.price,
                currency=entry.currency,
            ))

        for point in points:
            point.flights.sort(key=lambda f: f.price)
        return points
