"""Natal chart endpoint backed by the astrologer provider and the profile cache."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from .config import settings
from .database import get_db_connection
from .providers.astrologer_client import AstrologerClient, AstrologerError, AstrologerRequestError
from .providers.geocoder import Geocoder, GeocoderUnavailableError, GeocodingError
from .services.chart_service import (
    ChartDataError,
    IncompleteProfileError,
    get_chart,
    planet_display,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["charts"])


class PlanetResponse(BaseModel):
    name: str
    quality: str
    element: str
    sign: str
    sign_name: str
    sign_num: int
    position: float
    abs_pos: float
    emoji: str
    point_type: str
    house: str
    house_name: str
    retrograde: bool


class ChartResponse(BaseModel):
    profile_id: UUID
    from_cache: bool
    planets: list[PlanetResponse]


def _get_geocoder() -> Geocoder:
    return Geocoder(
        url=settings.geocoder_url,
        user_agent=settings.geocoder_user_agent,
    )


def _get_astrologer_client() -> AstrologerClient:
    return AstrologerClient(
        api_key=settings.astrologer_api_key,
        host=settings.astrologer_api_host,
        url=settings.astrologer_api_url,
    )


@router.get("/{profile_id}/chart", response_model=ChartResponse)
async def get_chart_endpoint(
    profile_id: UUID,
    refresh: bool = Query(default=False),
    connection: Any = Depends(get_db_connection),
) -> ChartResponse:
    """
    Return the profile's planet placements.

    The first successful fetch is cached on the profile; `refresh=true`
    bypasses and replaces the cache.
    """
    if not settings.astrologer_api_key:
        raise HTTPException(
            status_code=503,
            detail="Birth charts are unavailable because ASTROLOGER_API_KEY is not configured.",
        )

    try:
        planets, from_cache = await get_chart(
            connection,
            profile_id,
            geocoder=_get_geocoder(),
            astrologer=_get_astrologer_client(),
            default_timezone=settings.default_timezone,
            zodiac_type=settings.zodiac_type,
            refresh=refresh,
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except IncompleteProfileError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except GeocoderUnavailableError as exc:
        raise HTTPException(status_code=502, detail="Location lookup failed. Please try again.") from exc
    except GeocodingError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except AstrologerRequestError as exc:
        if exc.status_code == 429:
            raise HTTPException(status_code=503, detail="Chart provider is rate-limited right now. Try again shortly.") from exc
        raise HTTPException(status_code=502, detail="Chart provider request failed. Please try again.") from exc
    except (AstrologerError, ChartDataError) as exc:
        logger.warning("Unusable birth chart for profile %s: %s", profile_id, exc)
        raise HTTPException(status_code=502, detail="Chart provider response could not be processed.") from exc

    return ChartResponse(
        profile_id=profile_id,
        from_cache=from_cache,
        planets=[PlanetResponse(**planet_display(planet)) for planet in planets],
    )
