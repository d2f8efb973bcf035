"""
Test fixtures for Flightwatch backend tests.
"""
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from flightwatch.api.deps import (
    get_amadeus_client,
    get_flight_search,
    get_price_checker,
    get_scheduler,
    get_search_cache,
)
from flightwatch.database import Base, get_db
from flightwatch.main import app
from flightwatch.models import MonitoringJob, PriceHistory
from flightwatch.scheduler import PriceWatchScheduler
from flightwatch.services.normalizer import Endpoint, Flight
from flightwatch.services.price_check import PriceCheckService
from flightwatch.services.search_cache import SearchCache


# Create test database engine (SQLite in-memory, one shared connection)
TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign key constraints for SQLite
@event.listens_for(test_engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def session_factory(db_session):
    """Session factory bound to the test engine, for services that open their own sessions."""
    return TestSessionLocal


@pytest.fixture(scope="function")
def override_get_db(db_session):
    """
    Override the get_db dependency to use the test database session.
    """
    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    return _override_get_db


@pytest.fixture
def make_flight():
    """Build a normalized Flight with sensible defaults."""
    def _make(flight_id="F1", price="420.00", flight_number=None, departure_time="2026-11-02T09:40:00", **kwargs):
        airline_code = kwargs.pop("airline_code", "AF")
        return Flight(
            id=flight_id,
            airline=kwargs.pop("airline", "Air France"),
            airline_code=airline_code,
            flight_number=flight_number or f"{airline_code}{flight_id}",
            departure=Endpoint(airport=kwargs.pop("origin", "SFO"), time=departure_time),
            arrival=Endpoint(airport=kwargs.pop("destination", "CDG"), time=kwargs.pop("arrival_time", "2026-11-03T05:45:00")),
            duration=kwargs.pop("duration", "11h 5m"),
            stops=kwargs.pop("stops", 0),
            price=Decimal(str(price)),
            currency=kwargs.pop("currency", "USD"),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_job(db_session):
    """Persist a MonitoringJob; keyword arguments override the defaults."""
    def _make(**kwargs):
        values = {
            "origin": "SFO",
            "destination": "CDG",
            "departure_date": date.today() + timedelta(days=30),
            "adults": 1,
        }
        values.update(kwargs)
        job = MonitoringJob(**values)
        db_session.add(job)
        db_session.commit()
        db_session.refresh(job)
        return job

    return _make


@pytest.fixture
def make_history(db_session):
    """Persist one PriceHistory row for a job."""
    def _make(job_id, flight_id, price, recorded_at, **kwargs):
        entry = PriceHistory(
            monitoring_job_id=job_id,
            flight_id=flight_id,
            airline=kwargs.get("airline", "Air France"),
            airline_code=kwargs.get("airline_code", "AF"),
            flight_number=kwargs.get("flight_number", "AF83"),
            departure_time=kwargs.get("departure_time", "2026-11-02T09:40:00"),
            arrival_time=kwargs.get("arrival_time", "2026-11-03T05:45:00"),
            duration=kwargs.get("duration", "11h 5m"),
            stops=kwargs.get("stops", 0),
            price=Decimal(str(price)),
            currency=kwargs.get("currency", "USD"),
            recorded_at=recorded_at,
            booking_date=recorded_at.date(),
            travel_date=kwargs.get("travel_date", date(2026, 11, 2)),
        )
        db_session.add(entry)
        db_session.commit()
        return entry

    return _make


def offer(offer_id, price, carrier="AF", number="83", departure="2026-11-02T09:40:00",
          arrival="2026-11-03T05:45:00", segments=1):
    """Raw flight-offers entry in the provider's wire shape."""
    raw_segments = []
    for index in range(segments):
        raw_segments.append({
            "departure": {"iataCode": "SFO" if index == 0 else "AMS", "at": departure},
            "arrival": {"iataCode": "CDG" if index == segments - 1 else "AMS", "at": arrival},
            "carrierCode": carrier,
            "number": str(int(number) + index),
            "duration": "PT11H5M",
        })
    return {
        "id": offer_id,
        "source": "GDS",
        "itineraries": [{"duration": "PT11H5M", "segments": raw_segments}],
        "price": {"currency": "USD", "grandTotal": str(price)},
        "validatingAirlineCodes": [carrier],
    }


@pytest.fixture
def offers_response():
    """Build a provider response from (id, price) pairs or offer dicts."""
    def _make(*items, carriers=None):
        data = [item if isinstance(item, dict) else offer(*item) for item in items]
        return {
            "data": data,
            "dictionaries": {"carriers": carriers or {"AF": "AIR FRANCE", "KL": "KLM"}},
        }

    return _make


@pytest.fixture
def mock_amadeus():
    client = MagicMock()
    client.search_flights = AsyncMock(return_value={"data": []})
    client.health_check = AsyncMock(return_value=True)
    client.close = AsyncMock()
    return client


@pytest.fixture
def price_checker(mock_amadeus, session_factory):
    return PriceCheckService(mock_amadeus, session_factory=session_factory)


@pytest.fixture
def price_scheduler(price_checker, session_factory):
    return PriceWatchScheduler(
        price_checker,
        session_factory=session_factory,
        mode="production",
        throttle_seconds=0,
        store_probe=lambda factory: None,
    )


@pytest.fixture
def search_cache():
    return SearchCache(ttl_seconds=900)


@pytest.fixture
def flight_search():
    search = MagicMock()
    search.search = AsyncMock()
    return search


@pytest.fixture(scope="function")
async def client(override_get_db, mock_amadeus, search_cache, flight_search, price_checker, price_scheduler):
    """
    Create an async test client with the database and service dependencies overridden.
    """
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_amadeus_client] = lambda: mock_amadeus
    app.dependency_overrides[get_search_cache] = lambda: search_cache
    app.dependency_overrides[get_flight_search] = lambda: flight_search
    app.dependency_overrides[get_price_checker] = lambda: price_checker
    app.dependency_overrides[get_scheduler] = lambda: price_scheduler

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clear overrides after test
    app.dependency_overrides.clear()
