from flightwatch.utils.dates import utcnow, date_window, travel_date_of

__all__ = ["utcnow", "date_window", "travel_date_of"]
