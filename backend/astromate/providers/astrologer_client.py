"""Client for the RapidAPI astrologer birth-chart endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class AstrologerError(Exception):
    """Base exception for birth-chart provider errors."""


class AstrologerRequestError(AstrologerError):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class BirthSubject:
    """Birth data sent as the request `subject`."""

    name: str
    year: int
    month: int
    day: int
    hour: int
    minute: int
    latitude: float
    longitude: float
    city: str
    timezone: str
    zodiac_type: str = "Tropic"

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "hour": self.hour,
            "minute": self.minute,
            "longitude": self.longitude,
            "latitude": self.latitude,
            "city": self.city,
            "timezone": self.timezone,
            "zodiac_type": self.zodiac_type,
        }


class AstrologerClient:
    def __init__(
        self,
        *,
        api_key: str,
        host: str,
        url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.host = host
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def birth_chart(self, subject: BirthSubject) -> dict[str, Any]:
        """Fetch the raw birth-chart payload for one subject."""
        headers = {
            "content-type": "application/json",
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.host,
        }
        body = {"subject": subject.to_payload()}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.post(self.url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Birth chart request failed: %s", exc)
            raise AstrologerRequestError(503, "Birth chart request failed") from exc

        if response.status_code != 200:
            logger.warning("Birth chart provider returned %s: %s", response.status_code, response.text)
            raise AstrologerRequestError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise AstrologerError("Invalid JSON from birth chart provider") from exc

        if not isinstance(payload, dict):
            raise AstrologerError("Birth chart response is not a JSON object")
        return payload
