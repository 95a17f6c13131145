"""Natal chart lookup, parsing and caching for one profile."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import TYPE_CHECKING, Any
from uuid import UUID

from astromate.providers.astrologer_client import AstrologerClient, BirthSubject
from astromate.providers.geocoder import Geocoder
from astromate.services.profile_store import CHART_CACHE_KEY, get_fields, set_fields

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

logger = logging.getLogger(__name__)

# Keys of `data` that describe the subject rather than a chart point.
SUBJECT_METADATA_KEYS = {
    "utc_time",
    "local_time",
    "julian_day",
    "name",
    "month",
    "hour",
    "year",
    "day",
    "minute",
    "lng",
    "lat",
    "tz_str",
    "city",
    "nation",
    "zodiac_type",
}

SIGN_NAMES = {
    "ari": "Aries",
    "tau": "Taurus",
    "gem": "Gemini",
    "can": "Cancer",
    "leo": "Leo",
    "vir": "Virgo",
    "lib": "Libra",
    "sco": "Scorpio",
    "sag": "Sagittarius",
    "cap": "Capricorn",
    "aqu": "Aquarius",
    "pis": "Pisces",
}

DEFAULT_BIRTH_TIME = "12:00"


class ChartDataError(ValueError):
    """Raised when a birth-chart payload has no usable planet data."""


class IncompleteProfileError(ValueError):
    """Raised when a profile lacks the fields a chart needs."""


@dataclass(frozen=True)
class PlanetInfo:
    name: str
    quality: str
    element: str
    sign: str
    sign_num: int
    position: float
    abs_pos: float
    emoji: str
    point_type: str
    house: str
    retrograde: bool

    @classmethod
    def from_dict(cls, raw: Any) -> PlanetInfo | None:
        """Build from one provider/cached object; `None` when any field is unusable."""
        if not isinstance(raw, dict):
            return None

        strings = ("name", "quality", "element", "sign", "emoji", "point_type", "house")
        if any(not isinstance(raw.get(key), str) for key in strings):
            return None

        sign_num = raw.get("sign_num")
        if isinstance(sign_num, bool) or not isinstance(sign_num, int):
            return None

        numbers = {}
        for key in ("position", "abs_pos"):
            value = raw.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return None
            numbers[key] = float(value)

        retrograde = raw.get("retrograde")
        if not isinstance(retrograde, bool):
            return None

        return cls(
            name=raw["name"],
            quality=raw["quality"],
            element=raw["element"],
            sign=raw["sign"],
            sign_num=sign_num,
            position=numbers["position"],
            abs_pos=numbers["abs_pos"],
            emoji=raw["emoji"],
            point_type=raw["point_type"],
            house=raw["house"],
            retrograde=retrograde,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def full_sign_name(abbreviation: str) -> str:
    """'ari' -> 'Aries'; unknown abbreviations are returned unchanged."""
    return SIGN_NAMES.get(abbreviation.lower(), abbreviation)


def full_house_name(abbreviation: str) -> str:
    """'First_House' -> 'First House'."""
    return abbreviation.replace("_", " ").title()


def parse_planets(payload: dict[str, Any]) -> list[PlanetInfo]:
    """Extract chart points from a birth-chart response, skipping subject metadata."""
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ChartDataError("Planet data not found in birth chart response")

    planets: list[PlanetInfo] = []
    for key, value in data.items():
        if key in SUBJECT_METADATA_KEYS:
            continue

        planet = PlanetInfo.from_dict(value)
        if planet is not None:
            planets.append(planet)

    return planets


def planet_display(planet: PlanetInfo) -> dict[str, Any]:
    return {
        **planet.to_dict(),
        "sign_name": full_sign_name(planet.sign),
        "house_name": full_house_name(planet.house),
    }


def load_cached_planets(fields: dict[str, Any]) -> list[PlanetInfo] | None:
    """Return cached planets, or `None` when the cache is absent or unreadable."""
    cached = fields.get(CHART_CACHE_KEY)
    if not isinstance(cached, list):
        return None

    planets = [PlanetInfo.from_dict(item) for item in cached]
    if any(planet is None for planet in planets):
        logger.warning("Discarding unreadable cached chart")
        return None
    return planets


def _parse_birth_time(value: Any) -> tuple[int, int]:
    text = str(value or DEFAULT_BIRTH_TIME).strip()
    try:
        hour_text, minute_text = text.split(":")[:2]
        hour, minute = int(hour_text), int(minute_text)
    except ValueError as exc:
        raise IncompleteProfileError("birth_time must use HH:MM") from exc

    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise IncompleteProfileError("birth_time must use HH:MM")
    return hour, minute


def _parse_birthday(fields: dict[str, Any]) -> date:
    birthday_raw = fields.get("birthday")
    if not birthday_raw:
        raise IncompleteProfileError("Profile has no birthday")

    try:
        return date.fromisoformat(str(birthday_raw))
    except ValueError as exc:
        raise IncompleteProfileError("Profile birthday is not a valid date") from exc


def build_subject(
    fields: dict[str, Any],
    latitude: float,
    longitude: float,
    *,
    default_timezone: str,
    zodiac_type: str,
) -> BirthSubject:
    birthday = _parse_birthday(fields)
    hour, minute = _parse_birth_time(fields.get("birth_time"))

    return BirthSubject(
        name=str(fields.get("name") or "N/A"),
        year=birthday.year,
        month=birthday.month,
        day=birthday.day,
        hour=hour,
        minute=minute,
        latitude=latitude,
        longitude=longitude,
        city=str(fields.get("city") or "N/A"),
        timezone=str(fields.get("timezone") or default_timezone),
        zodiac_type=zodiac_type,
    )


async def get_chart(
    connection: AsyncConnection,
    profile_id: UUID,
    *,
    geocoder: Geocoder,
    astrologer: AstrologerClient,
    default_timezone: str,
    zodiac_type: str,
    refresh: bool = False,
) -> tuple[list[PlanetInfo], bool]:
    """
    Return `(planets, from_cache)` for one profile.

    A readable cached chart wins unless `refresh` is set; a freshly fetched
    chart replaces the cache.
    """
    fields = await get_fields(connection, profile_id)

    if not refresh:
        cached = load_cached_planets(fields)
        if cached is not None:
            return cached, True

    # Reject incomplete birth data before any provider call.
    _parse_birthday(fields)
    _parse_birth_time(fields.get("birth_time"))
    if not fields.get("city") or not fields.get("state"):
        raise IncompleteProfileError("Profile has no birth place")

    latitude, longitude = await geocoder.locate(
        str(fields.get("city") or ""),
        str(fields.get("state") or ""),
    )
    subject = build_subject(
        fields,
        latitude,
        longitude,
        default_timezone=default_timezone,
        zodiac_type=zodiac_type,
    )

    payload = await astrologer.birth_chart(subject)
    planets = parse_planets(payload)

    await set_fields(
        connection,
        profile_id,
        {CHART_CACHE_KEY: [planet.to_dict() for planet in planets]},
    )
    logger.info("Cached %s chart points for profile %s", len(planets), profile_id)
    return planets, False
