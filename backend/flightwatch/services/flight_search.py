"""
One-off flight search used by the /api/flights routes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from flightwatch.services.amadeus import AmadeusClient, FlightSearchCriteria
from flightwatch.services.date_range_search import DateRangeSearchService
from flightwatch.services.normalizer import Flight, filter_flights, normalize_offers
from flightwatch.services.search_cache import SearchCache, make_search_key

logger = logging.getLogger(__name__)


@dataclass
class SearchOutcome:
    flights: List[Flight] = field(default_factory=list)
    cached: bool = False
    search_info: Optional[Dict[str, Any]] = None


class FlightSearchService:
    def __init__(
        self,
        client: AmadeusClient,
        cache: SearchCache,
        date_range: Optional[DateRangeSearchService] = None,
    ):
        self.client = client
        self.cache = cache
        self.date_range = date_range or DateRangeSearchService(client)

    def _apply_airline_filter(self, flights: List[Flight], airlines: List[str]) -> List[Flight]:
        if not airlines:
            return flights
        filtered = filter_flights(flights, airlines=airlines)
        logger.info(f"Filtered {len(flights)} flights to {len(filtered)} matching airlines")
        return filtered

    async def search(self, criteria: FlightSearchCriteria, date_range: bool = False) -> SearchOutcome:
        """
        Search one route.

        With ``date_range`` the ±N day fan-out runs and is never cached.
        Otherwise the cache is consulted first and filled on a miss. The
        airline filter is applied to results in every path since the
        provider's own filter is not reliable on the test environment.
        """
        if date_range:
            result = await self.date_range.search(criteria)
            return SearchOutcome(
                flights=self._apply_airline_filter(result.flights, criteria.airlines),
                cached=False,
                search_info={
                    "date_range_enabled": True,
                    "total_searches": result.total_searches,
                    "successful_searches": result.successful_searches,
                    "errors": len(result.errors),
                    "error_details": result.errors or None,
                },
            )

        key = make_search_key(
            criteria.origin,
            criteria.destination,
            criteria.departure_date,
            criteria.return_date,
            criteria.adults,
            criteria.travel_class,
        )
        cached = self.cache.get(key)
        if cached is not None:
            return SearchOutcome(
                flights=self._apply_airline_filter(cached, criteria.airlines),
                cached=True,
            )

        response = await self.client.search_flights(criteria)
        flights = normalize_offers(response)
        # The key has no airline component, so store the unfiltered list
        self.cache.set(key, flights)
        return SearchOutcome(
            flights=self._apply_airline_filter(flights, criteria.airlines),
            cached=False,
        )
