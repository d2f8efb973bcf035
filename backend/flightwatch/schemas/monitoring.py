import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from flightwatch.models import TravelClass

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class RouteCriteria(BaseModel):
    """Route/passenger fields shared by searches and monitoring jobs."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None
    adults: int = Field(1, ge=1, le=9)
    travel_class: TravelClass = TravelClass.ECONOMY
    airlines: Optional[List[str]] = None

    @field_validator("origin", "destination")
    @classmethod
    def validate_airport(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("must be a valid 3-letter IATA airport code")
        return v

    @field_validator("departure_date", mode="before")
    @classmethod
    def validate_date_format(cls, v: Any) -> Any:
        if isinstance(v, str) and not ISO_DATE.match(v):
            raise ValueError("must be in YYYY-MM-DD format")
        return v

    @field_validator("departure_date")
    @classmethod
    def validate_not_past(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("cannot be in the past")
        return v

    @field_validator("airlines")
    @classmethod
    def validate_airlines(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        codes = [code.strip().upper() for code in v]
        if any(len(code) != 2 for code in codes):
            raise ValueError("each airline code must be a 2-letter code (e.g., AF, KL, UA)")
        return codes or None

    @model_validator(mode="after")
    def validate_route(self):
        if self.origin == self.destination:
            raise ValueError("Origin and destination must be different")
        if self.return_date and self.return_date < self.departure_date:
            raise ValueError("Return date cannot be before departure date")
        return self


class MonitoringJobCreate(RouteCriteria):
    pass


class PriceHistoryResponse(BaseModel):
    id: str
    monitoring_job_id: str
    flight_id: str
    airline: str
    airline_code: str
    flight_number: str
    departure_time: str
    arrival_time: str
    duration: str
    stops: int
    price: float
    currency: str
    recorded_at: datetime
    booking_date: date
    travel_date: date

    model_config = ConfigDict(from_attributes=True)


class PriceAlertResponse(BaseModel):
    id: str
    monitoring_job_id: str
    alert_type: str
    old_price: float
    new_price: float
    percentage_change: float
    flight_details: Dict[str, Any]
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AlertRouteSummary(BaseModel):
    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class PriceAlertWithJob(PriceAlertResponse):
    monitoring_job: AlertRouteSummary


class MonitoringJobResponse(BaseModel):
    id: str
    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None
    adults: int
    travel_class: TravelClass
    airlines: Optional[List[str]] = None
    is_active: bool
    check_interval_hours: int
    last_checked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MonitoringJobDetail(MonitoringJobResponse):
    price_history: List[PriceHistoryResponse] = []
    price_alerts: List[PriceAlertResponse] = []


class TrendFlightResponse(BaseModel):
    flight_id: str
    airline: str
    flight_number: str
    price: float
    currency: str

    model_config = ConfigDict(from_attributes=True)


class TrendPointResponse(BaseModel):
    recorded_at: datetime
    flights: List[TrendFlightResponse]

    model_config = ConfigDict(from_attributes=True)


class CheckResultResponse(BaseModel):
    job_id: str
    flights_found: int
    entries_recorded: int
    alerts_created: int
    errors: List[str] = []

    model_config = ConfigDict(from_attributes=True)


class SchedulerModeRequest(BaseModel):
    mode: str
