"""Forward geocoding of birth places through Nominatim."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Raised when a place cannot be resolved to coordinates."""


class GeocoderUnavailableError(GeocodingError):
    """Raised when the geocoding service itself fails."""


class Geocoder:
    def __init__(
        self,
        *,
        url: str,
        user_agent: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def locate(self, city: str, state: str) -> tuple[float, float]:
        """Return `(latitude, longitude)` for "city, state"."""
        query = ", ".join(part.strip() for part in (city, state) if part and part.strip())
        if not query:
            raise GeocodingError("City and state are required to locate a birth place")

        params = {"q": query, "format": "json", "limit": 1}
        headers = {"User-Agent": self.user_agent}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.get(self.url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Geocoding request for %r failed: %s", query, exc)
            raise GeocoderUnavailableError("Geocoding service is unavailable") from exc

        if response.status_code != 200:
            logger.warning("Geocoder returned %s for %r", response.status_code, query)
            raise GeocoderUnavailableError(f"Geocoding service returned {response.status_code}")

        try:
            results = response.json()
        except ValueError as exc:
            raise GeocoderUnavailableError("Geocoding service returned invalid JSON") from exc

        if not isinstance(results, list) or not results:
            raise GeocodingError(f"Could not find a location for '{query}'")

        first = results[0]
        try:
            return float(first["lat"]), float(first["lon"])
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError(f"Could not find a location for '{query}'") from exc
