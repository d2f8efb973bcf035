from datetime import date, datetime, timedelta, timezone
from typing import List, Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def date_window(base: date, days: int) -> List[date]:
    """Every date from ``base - days`` to ``base + days`` inclusive."""
    return [base + timedelta(days=offset) for offset in range(-days, days + 1)]


def travel_date_of(departure_time: str) -> Optional[date]:
    """Calendar date of a provider timestamp such as ``2026-11-02T09:40:00``."""
    if not departure_time:
        return None
    try:
        return date.fromisoformat(departure_time[:10])
    except ValueError:
        return None
