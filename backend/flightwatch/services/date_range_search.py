"""
Flexible-date search: query every departure (and return) date within
±N days of the requested ones and merge the results.

Calls run one after another with a fixed pause so a wide window cannot
burst past the provider's rate limit.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from flightwatch.config import get_settings
from flightwatch.services.amadeus import AmadeusClient, AmadeusError, FlightSearchCriteria
from flightwatch.services.normalizer import Flight, normalize_offers
from flightwatch.utils import date_window

logger = logging.getLogger(__name__)
settings = get_settings()

MANY_SEARCHES_WARNING = 20


@dataclass
class DateRangeResult:
    flights: List[Flight] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    total_searches: int = 0
    successful_searches: int = 0


def deduplicate_flights(flights: List[Flight]) -> List[Flight]:
    """Drop repeated flight ids; the first occurrence wins."""
    seen = set()
    unique = []
    for flight in flights:
        if flight.id in seen:
            continue
        seen.add(flight.id)
        unique.append(flight)

    removed = len(flights) - len(unique)
    if removed:
        logger.info(f"Removed {removed} duplicate flights")
    return unique


class DateRangeSearchService:
    def __init__(
        self,
        client: AmadeusClient,
        days: Optional[int] = None,
        delay_seconds: Optional[float] = None,
    ):
        self.client = client
        self.days = days if days is not None else settings.date_range_days
        self.delay_seconds = delay_seconds if delay_seconds is not None else settings.date_range_delay_seconds

    async def search(self, criteria: FlightSearchCriteria, days: Optional[int] = None) -> DateRangeResult:
        days = self.days if days is None else days
        departure_dates = date_window(criteria.departure_date, days)
        return_dates = date_window(criteria.return_date, days) if criteria.return_date else [None]

        total = len(departure_dates) * len(return_dates)
        logger.info(
            f"Date range search ±{days} day(s): {total} searches "
            f"({len(departure_dates)} departure × {len(return_dates)} return dates)"
        )
        if total > MANY_SEARCHES_WARNING:
            logger.warning(f"⚠️ Date range search will make {total} provider calls")

        result = DateRangeResult(total_searches=total)
        collected: List[Flight] = []
        count = 0

        for departure in departure_dates:
            for return_date in return_dates:
                count += 1
                label = f"{departure} → {return_date}" if return_date else f"{departure}"
                label = f"{label} ({count}/{total})"

                if count > 1:
                    await asyncio.sleep(self.delay_seconds)

                try:
                    response = await self.client.search_flights(
                        replace(criteria, departure_date=departure, return_date=return_date)
                    )
                    flights = normalize_offers(response)
                except AmadeusError as e:
                    logger.error(f"❌ Failed to search {label}: {e}")
                    result.errors.append({
                        "departure_date": departure.isoformat(),
                        "return_date": return_date.isoformat() if return_date else None,
                        "error": str(e),
                    })
                    continue

                collected.extend(flights)
                result.successful_searches += 1
                logger.info(f"✅ Found {len(flights)} flights for {label}")

        result.flights = deduplicate_flights(collected)
        logger.info(
            f"Date range search complete: {result.successful_searches}/{total} succeeded, "
            f"{len(result.errors)} failed, {len(result.flights)} unique flights"
        )
        return result
