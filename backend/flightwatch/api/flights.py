import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from flightwatch.api.deps import get_amadeus_client, get_flight_search, get_search_cache
from flightwatch.schemas import FlightResponse, FlightSearchRequest
from flightwatch.services.amadeus import (
    AmadeusClient,
    AmadeusError,
    AmadeusRateLimitError,
    FlightSearchCriteria,
)
from flightwatch.services.flight_search import FlightSearchService
from flightwatch.services.search_cache import SearchCache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/search")
async def search_flights(
    body: FlightSearchRequest,
    search: FlightSearchService = Depends(get_flight_search),
):
    criteria = FlightSearchCriteria(
        origin=body.origin,
        destination=body.destination,
        departure_date=body.departure_date,
        return_date=body.return_date,
        adults=body.adults,
        travel_class=body.travel_class.value,
        airlines=body.airlines or [],
    )
    if criteria.airlines:
        logger.info(f"Filtering by airlines: {', '.join(criteria.airlines)}")

    try:
        outcome = await search.search(criteria, date_range=body.date_range)
    except AmadeusRateLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except AmadeusError as e:
        raise HTTPException(status_code=502, detail=str(e))

    response = {
        "success": True,
        "data": [FlightResponse.model_validate(flight) for flight in outcome.flights],
        "cached": outcome.cached,
        "count": len(outcome.flights),
    }
    if outcome.search_info:
        response["search_info"] = outcome.search_info
    return response


@router.get("/health")
async def flight_service_health(
    client: AmadeusClient = Depends(get_amadeus_client),
    cache: SearchCache = Depends(get_search_cache),
):
    if not await client.health_check():
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "message": "Flight service is unhealthy - Amadeus API connection failed",
            },
        )

    return {
        "success": True,
        "message": "Flight service is healthy",
        "cache": cache.stats(),
    }


@router.post("/cache/clear")
async def clear_cache(cache: SearchCache = Depends(get_search_cache)):
    cleared = cache.clear()
    return {"success": True, "message": f"Cache cleared successfully ({cleared} entries)"}


@router.get("/cache/stats")
async def cache_stats(cache: SearchCache = Depends(get_search_cache)):
    return {"success": True, "data": {**cache.stats(), "key_list": cache.keys()}}
