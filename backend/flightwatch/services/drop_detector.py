"""
Price drop detection over a job's price history.

Each tracked flight's most recent price is compared against the first
price ever recorded for it within the job (not against the previous
check). A drop of at least the threshold raises one PriceAlert per
distinct (job, first price, latest price) triple.
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from flightwatch.config import GROUPING_KEYS, get_settings
from flightwatch.models import AlertType, PriceAlert, PriceHistory
from flightwatch.services.price_ledger import PriceLedger

logger = logging.getLogger(__name__)
settings = get_settings()


def percent_drop(first_price: Decimal, latest_price: Decimal) -> Decimal:
    """Positive when the price fell, e.g. 100 -> 90 gives 10."""
    return (first_price - latest_price) / first_price * 100


def flight_details(entry: PriceHistory) -> Dict:
    return {
        "flight_id": entry.flight_id,
        "airline": entry.airline,
        "airline_code": entry.airline_code,
        "flight_number": entry.flight_number,
        "departure_time": entry.departure_time,
        "arrival_time": entry.arrival_time,
        "duration": entry.duration,
        "stops": entry.stops,
        "currency": entry.currency,
        "travel_date": entry.travel_date.isoformat() if entry.travel_date else None,
        "recorded_at": entry.recorded_at.isoformat() if entry.recorded_at else None,
    }


class DropDetector:
    def __init__(
        self,
        db: Session,
        threshold_percent: Optional[float] = None,
        grouping_key: Optional[str] = None,
    ):
        self.db = db
        threshold = threshold_percent if threshold_percent is not None else settings.price_drop_threshold_percent
        self.threshold = Decimal(str(threshold))
        self.grouping_key = grouping_key or settings.drop_grouping_key
        if self.grouping_key not in GROUPING_KEYS:
            raise ValueError(f"Unknown grouping key: {self.grouping_key}")
        self.ledger = PriceLedger(db)
        self.last_errors: List[str] = []

    def _group_key(self, entry: PriceHistory) -> str:
        if self.grouping_key == "fingerprint":
            return entry.fingerprint
        return entry.flight_id

    def group_history(self, history: List[PriceHistory]) -> "OrderedDict[str, List[PriceHistory]]":
        groups: "OrderedDict[str, List[PriceHistory]]" = OrderedDict()
        for entry in history:
            groups.setdefault(self._group_key(entry), []).append(entry)
        return groups

    def _alert_exists(self, job_id: str, old_price: Decimal, new_price: Decimal) -> bool:
        return (
            self.db.query(PriceAlert.id)
            .filter(
                PriceAlert.monitoring_job_id == job_id,
                PriceAlert.old_price == old_price,
                PriceAlert.new_price == new_price,
            )
            .first()
            is not None
        )

    def _evaluate_group(self, job_id: str, key: str, entries: List[PriceHistory]) -> Optional[PriceAlert]:
        first, latest = entries[0], entries[-1]
        first_price = Decimal(str(first.price))
        latest_price = Decimal(str(latest.price))

        if first_price <= 0:
            logger.warning(f"Job {job_id}: skipping {key}, first recorded price is {first_price}")
            return None

        drop = percent_drop(first_price, latest_price)
        if drop < self.threshold:
            return None

        if self._alert_exists(job_id, first_price, latest_price):
            logger.debug(f"Job {job_id}: alert for {key} {first_price} -> {latest_price} already exists")
            return None

        alert = PriceAlert(
            monitoring_job_id=job_id,
            alert_type=AlertType.PRICE_DROP.value,
            old_price=first_price,
            new_price=latest_price,
            percentage_change=-float(drop.quantize(Decimal("0.01"))),
            flight_details=flight_details(latest),
            is_read=False,
        )
        self.db.add(alert)
        self.db.commit()
        logger.info(
            f"🔔 Price drop for job {job_id} ({latest.flight_number}): "
            f"{first_price} → {latest_price} {latest.currency} (-{drop:.1f}%)"
        )
        return alert

    def check_for_price_drops(self, job_id: str) -> List[PriceAlert]:
        """
        Compare first and latest price of every tracked flight of a job.

        A failure on one flight is logged and collected in ``last_errors``;
        the remaining flights are still evaluated.
        """
        self.last_errors = []
        history = self.ledger.get_history(job_id)
        if len(history) < 2:
            return []

        created = []
        for key, entries in self.group_history(history).items():
            if len(entries) < 2:
                continue
            try:
                alert = self._evaluate_group(job_id, key, entries)
            except Exception as e:
                self.db.rollback()
                logger.error(f"❌ Drop check failed for job {job_id}, flight {key}: {e}")
                self.last_errors.append(f"{key}: {e}")
                continue
            if alert is not None:
                created.append(alert)

        return created
