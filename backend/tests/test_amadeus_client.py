"""Tests for the Amadeus flight-offers client: token caching, retry on 401, error mapping."""
from datetime import date, timedelta
from unittest.mock import MagicMock

import httpx
import pytest

from flightwatch.services.amadeus import (
    AmadeusAuthError,
    AmadeusClient,
    AmadeusError,
    AmadeusRateLimitError,
    FlightSearchCriteria,
)
from flightwatch.models import TravelClass
from flightwatch.utils import utcnow


class FakeAmadeus:
    """Scripted provider: a queue of responses for the offers endpoint."""

    def __init__(self, offer_responses=None, token_status=200, expires_in=1799):
        self.offer_responses = list(offer_responses or [])
        self.token_status = token_status
        self.expires_in = expires_in
        self.token_calls = 0
        self.offer_requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            self.token_calls += 1
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_client"})
            return httpx.Response(200, json={
                "access_token": f"token-{self.token_calls}",
                "expires_in": self.expires_in,
            })

        self.offer_requests.append(request)
        if self.offer_responses:
            response = self.offer_responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return httpx.Response(200, json={"data": [], "dictionaries": {}})


def _client(fake: FakeAmadeus, **kwargs) -> AmadeusClient:
    return AmadeusClient(
        api_key="key",
        api_secret="secret",
        base_url="https://test.api.amadeus.com",
        transport=httpx.MockTransport(fake.handler),
        **kwargs,
    )


def _criteria(**kwargs) -> FlightSearchCriteria:
    values = {
        "origin": "SFO",
        "destination": "CDG",
        "departure_date": date(2026, 11, 2),
    }
    values.update(kwargs)
    return FlightSearchCriteria(**values)


class TestAuthentication:
    async def test_token_cached(self):
        fake = FakeAmadeus()
        client = _client(fake)

        assert await client.authenticate() == "token-1"
        assert await client.authenticate() == "token-1"
        assert fake.token_calls == 1
        await client.close()

    async def test_token_refreshed_inside_buffer(self):
        fake = FakeAmadeus(expires_in=30)
        client = _client(fake, token_buffer_seconds=60)

        await client.authenticate()
        await client.authenticate()

        assert fake.token_calls == 2
        await client.close()

    async def test_token_expiry_uses_buffer(self):
        fake = FakeAmadeus(expires_in=1799)
        client = _client(fake, token_buffer_seconds=60)

        await client.authenticate()

        remaining = client._token_expires - utcnow()
        assert timedelta(seconds=1730) < remaining <= timedelta(seconds=1739)
        await client.close()

    async def test_missing_credentials(self):
        client = AmadeusClient(api_key="", api_secret="", transport=httpx.MockTransport(FakeAmadeus().handler))
        assert client.is_available() is False
        with pytest.raises(AmadeusAuthError):
            await client.authenticate()

    async def test_token_failure(self):
        client = _client(FakeAmadeus(token_status=401))
        with pytest.raises(AmadeusAuthError) as exc:
            await client.authenticate()
        assert exc.value.status_code == 401

    async def test_health_check(self):
        assert await _client(FakeAmadeus()).health_check() is True
        assert await _client(FakeAmadeus(token_status=500)).health_check() is False


class TestSearchParams:
    async def test_query_parameters(self):
        fake = FakeAmadeus()
        client = _client(fake)

        await client.search_flights(_criteria(
            return_date=date(2026, 11, 9),
            adults=2,
            travel_class=TravelClass.BUSINESS.value,
            airlines=["AF", "KL"],
        ))

        params = fake.offer_requests[0].url.params
        assert params["originLocationCode"] == "SFO"
        assert params["destinationLocationCode"] == "CDG"
        assert params["departureDate"] == "2026-11-02"
        assert params["returnDate"] == "2026-11-09"
        assert params["adults"] == "2"
        assert params["travelClass"] == "BUSINESS"
        assert params["max"] == "50"
        assert params["currencyCode"] == "USD"
        assert params["nonStop"] == "false"
        assert params["includedAirlineCodes"] == "AF,KL"
        assert fake.offer_requests[0].headers["Authorization"] == "Bearer token-1"

    async def test_one_way_without_airlines(self):
        fake = FakeAmadeus()
        await _client(fake).search_flights(_criteria())

        params = fake.offer_requests[0].url.params
        assert "returnDate" not in params
        assert "includedAirlineCodes" not in params

    def test_criteria_from_job(self):
        job = MagicMock()
        job.origin = "SFO"
        job.destination = "CDG"
        job.departure_date = date(2026, 11, 2)
        job.return_date = None
        job.adults = 1
        job.travel_class = TravelClass.FIRST
        job.airline_codes = ["AF"]

        criteria = FlightSearchCriteria.from_job(job)

        assert criteria.travel_class == "FIRST"
        assert criteria.airlines == ["AF"]
        assert criteria.trip_type == "one-way"


class TestRetryAndErrors:
    async def test_401_refreshes_token_and_retries_once(self):
        fake = FakeAmadeus(offer_responses=[
            httpx.Response(401, json={"errors": [{"title": "Unauthorized"}]}),
            httpx.Response(200, json={"data": [{"id": "1"}]}),
        ])
        client = _client(fake)

        data = await client.search_flights(_criteria(airlines=["AF"]))

        assert data == {"data": [{"id": "1"}]}
        assert fake.token_calls == 2
        assert len(fake.offer_requests) == 2
        assert fake.offer_requests[1].headers["Authorization"] == "Bearer token-2"
        # The retry keeps every parameter, airline filter included
        assert fake.offer_requests[1].url.params == fake.offer_requests[0].url.params

    async def test_second_401_is_not_retried(self):
        fake = FakeAmadeus(offer_responses=[
            httpx.Response(401, json={}),
            httpx.Response(401, json={"errors": [{"detail": "Token rejected"}]}),
        ])

        with pytest.raises(AmadeusError) as exc:
            await _client(fake).search_flights(_criteria())

        assert exc.value.status_code == 401
        assert str(exc.value) == "Token rejected"
        assert len(fake.offer_requests) == 2

    async def test_429_is_rate_limit_error(self):
        fake = FakeAmadeus(offer_responses=[httpx.Response(429, json={})])

        with pytest.raises(AmadeusRateLimitError) as exc:
            await _client(fake).search_flights(_criteria())

        assert exc.value.status_code == 429
        assert len(fake.offer_requests) == 1

    async def test_provider_error_detail(self):
        fake = FakeAmadeus(offer_responses=[
            httpx.Response(400, json={"errors": [{"title": "INVALID DATE", "detail": "Date is in the past"}]}),
        ])

        with pytest.raises(AmadeusError) as exc:
            await _client(fake).search_flights(_criteria())

        assert str(exc.value) == "Date is in the past"
        assert exc.value.status_code == 400

    async def test_provider_error_title_fallback(self):
        fake = FakeAmadeus(offer_responses=[httpx.Response(500, json={"errors": [{"title": "SYSTEM ERROR"}]})])

        with pytest.raises(AmadeusError, match="SYSTEM ERROR"):
            await _client(fake).search_flights(_criteria())

    async def test_timeout_is_provider_error(self):
        fake = FakeAmadeus(offer_responses=[httpx.ReadTimeout("timed out")])

        with pytest.raises(AmadeusError, match="timed out"):
            await _client(fake, timeout=5).search_flights(_criteria())

    async def test_close_is_idempotent(self):
        client = _client(FakeAmadeus())
        await client.authenticate()
        await client.close()
        await client.close()
        assert client._client is None
