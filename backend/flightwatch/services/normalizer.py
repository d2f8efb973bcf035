"""
Convert raw flight-offers responses into Flight records.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

_HOURS = re.compile(r"(\d+)H")
_MINUTES = re.compile(r"(\d+)M")
_HUMAN_HOURS = re.compile(r"(\d+)h")
_HUMAN_MINUTES = re.compile(r"(\d+)m")


@dataclass
class Endpoint:
    airport: str
    time: str
    terminal: Optional[str] = None


@dataclass
class FlightSegment:
    departure: Endpoint
    arrival: Endpoint
    carrier_code: str
    number: str
    duration: str


@dataclass
class Flight:
    id: str
    airline: str
    airline_code: str
    flight_number: str
    departure: Endpoint
    arrival: Endpoint
    duration: str
    stops: int
    price: Decimal
    currency: str
    segments: List[FlightSegment] = field(default_factory=list)
    booking_source: Optional[str] = None
    validating_airlines: List[str] = field(default_factory=list)

    @property
    def fingerprint(self) -> str:
        """Content identity: carrier + flight number + departure time."""
        return f"{self.flight_number}@{self.departure.time}"


def format_duration(iso_duration: Optional[str]) -> str:
    """Turn an ISO 8601 duration like ``PT5H30M`` into ``5h 30m``."""
    if not iso_duration:
        return "0m"
    hours_match = _HOURS.search(iso_duration)
    minutes_match = _MINUTES.search(iso_duration)
    hours = int(hours_match.group(1)) if hours_match else 0
    minutes = int(minutes_match.group(1)) if minutes_match else 0

    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


def duration_to_minutes(duration: str) -> int:
    hours_match = _HUMAN_HOURS.search(duration or "")
    minutes_match = _HUMAN_MINUTES.search(duration or "")
    hours = int(hours_match.group(1)) if hours_match else 0
    minutes = int(minutes_match.group(1)) if minutes_match else 0
    return hours * 60 + minutes


def _endpoint(raw: Dict[str, Any]) -> Endpoint:
    return Endpoint(
        airport=raw.get("iataCode", ""),
        time=raw.get("at", ""),
        terminal=raw.get("terminal"),
    )


def normalize_offer(offer: Dict[str, Any], carriers: Dict[str, str]) -> Flight:
    """Normalize one offer. Only the outbound itinerary is described."""
    itinerary = offer["itineraries"][0]
    raw_segments = itinerary["segments"]
    first_segment = raw_segments[0]
    last_segment = raw_segments[-1]

    carrier_code = first_segment["carrierCode"]
    price_info = offer.get("price", {})

    segments = [
        FlightSegment(
            departure=_endpoint(seg.get("departure", {})),
            arrival=_endpoint(seg.get("arrival", {})),
            carrier_code=seg.get("carrierCode", ""),
            number=seg.get("number", ""),
            duration=format_duration(seg.get("duration")),
        )
        for seg in raw_segments
    ]

    return Flight(
        id=str(offer["id"]),
        airline=carriers.get(carrier_code, carrier_code),
        airline_code=carrier_code,
        flight_number=f"{carrier_code}{first_segment.get('number', '')}",
        departure=_endpoint(first_segment.get("departure", {})),
        arrival=_endpoint(last_segment.get("arrival", {})),
        duration=format_duration(itinerary.get("duration")),
        stops=len(raw_segments) - 1,
        price=Decimal(str(price_info["grandTotal"])),
        currency=price_info.get("currency", ""),
        segments=segments,
        booking_source=offer.get("source"),
        validating_airlines=list(offer.get("validatingAirlineCodes") or []),
    )


def normalize_offers(response: Dict[str, Any]) -> List[Flight]:
    """
    Normalize a flight-offers response into Flight records, cheapest first.

    Offers missing an itinerary, a segment or a parseable grand total are
    skipped. The sort is stable, so equal prices keep provider order.
    """
    data = response.get("data") or []
    if not data:
        return []

    carriers = (response.get("dictionaries") or {}).get("carriers") or {}

    flights = []
    for offer in data:
        try:
            flights.append(normalize_offer(offer, carriers))
        except (KeyError, IndexError, TypeError, InvalidOperation):
            continue

    flights.sort(key=lambda f: f.price)
    return flights


def filter_flights(
    flights: List[Flight],
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    airlines: Optional[List[str]] = None,
    max_stops: Optional[int] = None,
) -> List[Flight]:
    filtered = list(flights)
    if min_price is not None:
        filtered = [f for f in filtered if f.price >= min_price]
    if max_price is not None:
        filtered = [f for f in filtered if f.price <= max_price]
    if airlines:
        codes = {code.upper() for code in airlines}
        filtered = [f for f in filtered if f.airline_code in codes]
    if max_stops is not None:
        filtered = [f for f in filtered if f.stops <= max_stops]
    return filtered


def _departure_key(flight: Flight) -> datetime:
    try:
        return datetime.fromisoformat(flight.departure.time)
    except ValueError:
        return datetime.max


def sort_flights(flights: List[Flight], sort_by: str = "price") -> List[Flight]:
    if sort_by == "price":
        return sorted(flights, key=lambda f: f.price)
    if sort_by == "duration":
        return sorted(flights, key=lambda f: duration_to_minutes(f.duration))
    if sort_by == "departure":
        return sorted(flights, key=_departure_key)
    return list(flights)
