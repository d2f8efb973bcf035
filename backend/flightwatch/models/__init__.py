# SQLAlchemy models
from flightwatch.models.monitoring_job import MonitoringJob, TravelClass
from flightwatch.models.price_history import PriceHistory
from flightwatch.models.price_alert import PriceAlert, AlertType

__all__ = [
    "MonitoringJob",
    "PriceHistory",
    "PriceAlert",
    # Enums
    "TravelClass",
    "AlertType",
]
