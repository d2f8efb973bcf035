"""
Amadeus flight-offers client.

OAuth2 client-credentials auth with a cached bearer token. A request
rejected with 401 clears the token and is retried exactly once; 429 is
surfaced as AmadeusRateLimitError so callers can back off.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import httpx

from flightwatch.config import get_settings
from flightwatch.utils import utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

TOKEN_PATH = "/v1/security/oauth2/token"
OFFERS_PATH = "/v2/shopping/flight-offers"


class AmadeusError(Exception):
    """Flight search failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AmadeusAuthError(AmadeusError):
    """Could not obtain an access token."""


class AmadeusRateLimitError(AmadeusError):
    """The provider rejected the call with 429."""


@dataclass
class FlightSearchCriteria:
    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None
    adults: int = 1
    travel_class: str = "ECONOMY"
    airlines: List[str] = field(default_factory=list)

    @classmethod
    def from_job(cls, job) -> "FlightSearchCriteria":
        travel_class = job.travel_class.value if hasattr(job.travel_class, "value") else job.travel_class
        return cls(
            origin=job.origin,
            destination=job.destination,
            departure_date=job.departure_date,
            return_date=job.return_date,
            adults=job.adults,
            travel_class=travel_class or "ECONOMY",
            airlines=job.airline_codes,
        )

    @property
    def trip_type(self) -> str:
        return "round-trip" if self.return_date else "one-way"


class AmadeusClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: Optional[int] = None,
        currency: Optional[str] = None,
        token_buffer_seconds: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.amadeus_api_key
        self.api_secret = api_secret if api_secret is not None else settings.amadeus_api_secret
        self.base_url = (base_url or settings.amadeus_base_url).rstrip("/")
        self.timeout = timeout or settings.amadeus_timeout_seconds
        self.max_results = max_results or settings.amadeus_max_results
        self.currency = currency or settings.amadeus_currency
        self.token_buffer_seconds = (
            token_buffer_seconds
            if token_buffer_seconds is not None
            else settings.amadeus_token_buffer_seconds
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._token: Optional[str] = None
        self._token_expires = None

        if not self.is_available():
            logger.warning("Amadeus API credentials not configured")

    def is_available(self) -> bool:
        return bool(self.api_key and self.api_secret)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def clear_token(self) -> None:
        self._token = None
        self._token_expires = None

    async def authenticate(self) -> str:
        """Return a bearer token, fetching a new one when the cached one is near expiry."""
        if self._token and self._token_expires and utcnow() < self._token_expires:
            return self._token

        if not self.is_available():
            raise AmadeusAuthError("Amadeus API credentials not configured")

        logger.info("Fetching new Amadeus access token")
        try:
            response = await self._get_client().post(
                TOKEN_PATH,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.api_key,
                    "client_secret": self.api_secret,
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise AmadeusAuthError(
                "Failed to authenticate with Amadeus API",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise AmadeusAuthError(f"Failed to authenticate with Amadeus API: {e}") from e

        expires_in = int(data.get("expires_in", 1799))
        self._token = data["access_token"]
        self._token_expires = utcnow() + timedelta(seconds=expires_in - self.token_buffer_seconds)
        logger.info(f"Access token obtained, expires in {expires_in}s")
        return self._token

    def build_params(self, criteria: FlightSearchCriteria) -> Dict[str, Any]:
        params = {
            "originLocationCode": criteria.origin.upper(),
            "destinationLocationCode": criteria.destination.upper(),
            "departureDate": criteria.departure_date.isoformat(),
            "adults": criteria.adults,
            "travelClass": criteria.travel_class,
            "max": self.max_results,
            "currencyCode": self.currency,
            "nonStop": "false",
        }
        if criteria.return_date:
            params["returnDate"] = criteria.return_date.isoformat()
        if criteria.airlines:
            params["includedAirlineCodes"] = ",".join(criteria.airlines)
        return params

    async def _get_offers(self, token: str, params: Dict[str, Any]) -> httpx.Response:
        return await self._get_client().get(
            OFFERS_PATH,
            headers={"Authorization": f"Bearer {token}"},
            params=params,
        )

    async def search_flights(self, criteria: FlightSearchCriteria) -> Dict[str, Any]:
        """Search flight offers; returns the raw response (``data`` + ``dictionaries``)."""
        params = self.build_params(criteria)
        logger.info(
            f"Searching {criteria.trip_type} flights: {criteria.origin} → {criteria.destination} "
            f"on {criteria.departure_date}"
            + (f" (return: {criteria.return_date})" if criteria.return_date else "")
        )

        token = await self.authenticate()
        try:
            response = await self._get_offers(token, params)
            if response.status_code == 401:
                logger.info("Amadeus token rejected, refreshing and retrying once")
                self.clear_token()
                token = await self.authenticate()
                response = await self._get_offers(token, params)
        except httpx.TimeoutException as e:
            raise AmadeusError(f"Flight search timed out after {self.timeout:.0f}s") from e
        except httpx.HTTPError as e:
            raise AmadeusError(f"Flight search request failed: {e}") from e

        if response.status_code == 429:
            logger.error("Amadeus API rate limit exceeded")
            raise AmadeusRateLimitError(
                "Flight search rate limit exceeded. Please try again later.",
                status_code=429,
            )
        if response.is_error:
            message = self._error_detail(response)
            logger.error(f"Amadeus API error ({response.status_code}): {message}")
            raise AmadeusError(message, status_code=response.status_code)

        data = response.json()
        logger.info(f"Found {len(data.get('data') or [])} flight offers")
        return data

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            errors = response.json().get("errors") or []
        except ValueError:
            errors = []
        if errors:
            first = errors[0]
            return first.get("detail") or first.get("title") or "Failed to search flights"
        return "Failed to search flights. Please try again."

    async def health_check(self) -> bool:
        try:
            await self.authenticate()
            return True
        except AmadeusError as e:
            logger.warning(f"Amadeus health check failed: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
