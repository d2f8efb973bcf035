from pydantic import BaseModel, ConfigDict, StrictBool
from typing import List, Optional

from flightwatch.schemas.monitoring import RouteCriteria


class FlightSearchRequest(RouteCriteria):
    date_range: StrictBool = False


class EndpointResponse(BaseModel):
    airport: str
    time: str
    terminal: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class FlightSegmentResponse(BaseModel):
    departure: EndpointResponse
    arrival: EndpointResponse
    carrier_code: str
    number: str
    duration: str

    model_config = ConfigDict(from_attributes=True)


class FlightResponse(BaseModel):
    id: str
    airline: str
    airline_code: str
    flight_number: str
    departure: EndpointResponse
    arrival: EndpointResponse
    duration: str
    stops: int
    price: float
    currency: str
    segments: List[FlightSegmentResponse] = []
    booking_source: Optional[str] = None
    validating_airlines: List[str] = []

    model_config = ConfigDict(from_attributes=True)
