"""
Dependencies resolving the long-lived services built in the app lifespan.
"""

from fastapi import Request

from flightwatch.scheduler import PriceWatchScheduler
from flightwatch.services.flight_search import FlightSearchService
from flightwatch.services.amadeus import AmadeusClient
from flightwatch.services.price_check import PriceCheckService
from flightwatch.services.search_cache import SearchCache


def get_amadeus_client(request: Request) -> AmadeusClient:
    return request.app.state.amadeus_client


def get_search_cache(request: Request) -> SearchCache:
    return request.app.state.search_cache


def get_flight_search(request: Request) -> FlightSearchService:
    return request.app.state.flight_search


def get_price_checker(request: Request) -> PriceCheckService:
    return request.app.state.price_checker


def get_scheduler(request: Request) -> PriceWatchScheduler:
    return request.app.state.scheduler
