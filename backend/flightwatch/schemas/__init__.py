from flightwatch.schemas.monitoring import (
    MonitoringJobCreate,
    MonitoringJobResponse,
    MonitoringJobDetail,
    PriceHistoryResponse,
    PriceAlertResponse,
    PriceAlertWithJob,
    AlertRouteSummary,
    TrendPointResponse,
    CheckResultResponse,
    SchedulerModeRequest,
)
from flightwatch.schemas.flight import FlightSearchRequest, FlightResponse

__all__ = [
    "MonitoringJobCreate",
    "MonitoringJobResponse",
    "MonitoringJobDetail",
    "PriceHistoryResponse",
    "PriceAlertResponse",
    "PriceAlertWithJob",
    "AlertRouteSummary",
    "TrendPointResponse",
    "CheckResultResponse",
    "SchedulerModeRequest",
    "FlightSearchRequest",
    "FlightResponse",
]
