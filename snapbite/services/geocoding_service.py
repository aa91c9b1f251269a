"""Geocoding service for address to coordinates conversion.

Google Geocoding is tried first when an API key is configured, then the free
OpenStreetMap Nominatim service. If both fail, a jittered default coordinate
is returned so every restaurant always has a location.
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import httpx
import pydantic
from pydantic import BaseModel, Field

from snapbite.config import Config, get_config
from snapbite.errors import (
    GeocodingExhausted,
    NoResultsError,
    SchemaError,
    SnapBiteError,
    TransportError,
)
from snapbite.models import Coordinates, Err, GeocodingProvider, Ok, Result

logger = logging.getLogger(__name__)

TierResult = Result[Coordinates, SnapBiteError]


class GeocodeResult(BaseModel):
    """Coordinates for an address plus which provider produced them."""

    coordinates: Coordinates = Field(..., description="Resolved location")
    provider: GeocodingProvider = Field(..., description="Tier that answered")
    failures: list[str] = Field(
        default_factory=list, description="Errors from tiers that were skipped past"
    )


class GeocodingResolver:
    """Resolves free-text addresses to coordinates.

    Every tier reports its own failure as an ``Err`` instead of raising, and
    ``resolve`` always returns a usable coordinate.
    """

    def __init__(
        self,
        config: Config | None = None,
        http_client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the resolver.

        Args:
            config: Application configuration (global config if None)
            http_client: Shared HTTP client; a short-lived one is opened per
                lookup when omitted
            rng: Source of jitter for the default coordinate
            sleep: Coroutine used for the Nominatim courtesy delay
        """
        self.config = config or get_config()
        self._http_client = http_client
        self._rng = rng or random.Random()
        self._sleep = sleep

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return

        async with httpx.AsyncClient(
            timeout=self.config.request_timeout_seconds
        ) as client:
            yield client

    async def resolve(self, address: str) -> Coordinates:
        """Resolve an address to coordinates. Never raises.

        Args:
            address: Free-text address

        Returns:
            Coordinates from the first provider that succeeds, or the default
        """
        result = await self.resolve_with_provenance(address)
        return result.coordinates

    async def resolve_with_provenance(self, address: str) -> GeocodeResult:
        """Resolve an address and report which provider answered.

        Args:
            address: Free-text address

        Returns:
            GeocodeResult with coordinates, provider and absorbed failures
        """
        address = address.strip()
        failures: list[SnapBiteError] = []

        if not address:
            logger.warning("No address to geocode - using default coordinates")
            return self._default_result(failures)

        async with self._client() as client:
            if self.config.has_google_geocoding():
                result = await self._geocode_with_google(client, address)
                if isinstance(result, Ok):
                    logger.info(f"Geocoded '{address}' with Google")
                    return GeocodeResult(
                        coordinates=result.value, provider=GeocodingProvider.GOOGLE
                    )
                logger.warning(
                    f"Google geocoding failed, falling back to Nominatim: {result.error}"
                )
                failures.append(result.error)

            result = await self._geocode_with_nominatim(client, address)
            if isinstance(result, Ok):
                logger.info(f"Geocoded '{address}' with Nominatim")
                return GeocodeResult(
                    coordinates=result.value,
                    provider=GeocodingProvider.NOMINATIM,
                    failures=[str(failure) for failure in failures],
                )
            failures.append(result.error)

        logger.error(str(GeocodingExhausted(address, failures)))
        return self._default_result(failures)

    async def _geocode_with_google(
        self, client: httpx.AsyncClient, address: str
    ) -> TierResult:
        try:
            response = await client.get(
                self.config.google_geocoding_url,
                params={"address": address, "key": self.config.google_maps_api_key},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            return Err(TransportError(f"Google geocoding request failed: {e}"))
        except ValueError as e:
            return Err(SchemaError(f"Google geocoding returned invalid JSON: {e}"))

        if not isinstance(data, dict):
            return Err(SchemaError("Google geocoding returned an unexpected body"))

        status = data.get("status")
        results = data.get("results") or []
        if status == "ZERO_RESULTS" or (status == "OK" and not results):
            return Err(NoResultsError("Google geocoding returned no results"))
        if status != "OK":
            return Err(TransportError(f"Google geocoding failed: {status}"))

        try:
            location = results[0]["geometry"]["location"]
            coordinates = Coordinates(
                latitude=location["lat"], longitude=location["lng"]
            )
        except (KeyError, IndexError, TypeError, pydantic.ValidationError) as e:
            return Err(SchemaError(f"Google geocoding result is malformed: {e}"))

        return Ok(coordinates)

    async def _geocode_with_nominatim(
        self, client: httpx.AsyncClient, address: str
    ) -> TierResult:
        # Nominatim's usage policy allows at most one request per second.
        if self.config.nominatim_delay_seconds > 0:
            await self._sleep(self.config.nominatim_delay_seconds)

        try:
            response = await client.get(
                self.config.nominatim_url,
                params={"format": "json", "q": address, "limit": 1},
                headers={"User-Agent": self.config.geocoding_user_agent},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            return Err(TransportError(f"Nominatim request failed: {e}"))
        except ValueError as e:
            return Err(SchemaError(f"Nominatim returned invalid JSON: {e}"))

        if not isinstance(data, list):
            return Err(SchemaError("Nominatim returned an unexpected body"))
        if not data:
            return Err(NoResultsError("Nominatim geocoding returned no results"))

        try:
            coordinates = Coordinates(
                latitude=float(data[0]["lat"]), longitude=float(data[0]["lon"])
            )
        except (KeyError, TypeError, ValueError) as e:
            return Err(SchemaError(f"Nominatim result is malformed: {e}"))

        return Ok(coordinates)

    def default_coordinates(self) -> Coordinates:
        """Return the reference point offset by a small random jitter."""
        jitter = self.config.default_jitter_degrees
        latitude = self.config.default_latitude + self._rng.uniform(-jitter, jitter)
        longitude = self.config.default_longitude + self._rng.uniform(-jitter, jitter)

        latitude = min(max(latitude, -90.0), 90.0)
        if not -180.0 <= longitude <= 180.0:
            longitude = (longitude + 180.0) % 360.0 - 180.0

        return Coordinates(latitude=latitude, longitude=longitude)

    def _default_result(self, failures: list[SnapBiteError]) -> GeocodeResult:
        return GeocodeResult(
            coordinates=self.default_coordinates(),
            provider=GeocodingProvider.DEFAULT,
            failures=[str(failure) for failure in failures],
        )

    async def reverse_geocode(self, coordinates: Coordinates) -> str:
        """Convert coordinates to a human-readable address.

        Args:
            coordinates: Location to look up

        Returns:
            Nominatim's display name, or the formatted coordinates on failure
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    self.config.nominatim_reverse_url,
                    params={
                        "format": "json",
                        "lat": coordinates.latitude,
                        "lon": coordinates.longitude,
                    },
                    headers={"User-Agent": self.config.geocoding_user_agent},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Reverse geocoding failed: {e}")
            return str(coordinates)

        if isinstance(data, dict) and data.get("display_name"):
            return data["display_name"]
        return str(coordinates)
