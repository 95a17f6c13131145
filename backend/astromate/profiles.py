"""Profiles router: the birth details collected when a user first opens the app."""

from __future__ import annotations

import re
from datetime import date
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from .database import get_db_connection
from .services.profile_store import (
    CHART_CACHE_KEY,
    CHART_INPUT_KEYS,
    create_profile,
    delete_fields,
    get_fields,
    set_fields,
)

router = APIRouter(prefix="/profiles", tags=["profiles"])

_BIRTH_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
REQUIRED_FOR_ONBOARDING = ("name", "birthday", "city", "state")


def _validate_birth_time(value: str | None) -> str | None:
    if value is None:
        return value
    value = value.strip()
    if not _BIRTH_TIME_RE.match(value):
        raise ValueError("birth_time must use 24-hour HH:MM")
    return value


def _validate_timezone(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {value}") from exc
    return value


class ProfileCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    birthday: date
    birth_time: str | None = None
    city: str = Field(min_length=1, max_length=120)
    state: str = Field(min_length=1, max_length=120)
    timezone: str | None = None

    @field_validator("birth_time")
    @classmethod
    def check_birth_time(cls, value: str | None) -> str | None:
        return _validate_birth_time(value)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str | None) -> str | None:
        return _validate_timezone(value)


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    birthday: date | None = None
    birth_time: str | None = None
    city: str | None = Field(default=None, min_length=1, max_length=120)
    state: str | None = Field(default=None, min_length=1, max_length=120)
    timezone: str | None = None

    @field_validator("birth_time")
    @classmethod
    def check_birth_time(cls, value: str | None) -> str | None:
        return _validate_birth_time(value)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str | None) -> str | None:
        return _validate_timezone(value)


class ProfileResponse(BaseModel):
    id: UUID
    name: str | None = None
    birthday: date | None = None
    birth_time: str | None = None
    city: str | None = None
    state: str | None = None
    timezone: str | None = None
    onboarded: bool
    has_chart: bool


def _to_storage(data: dict[str, Any]) -> dict[str, Any]:
    stored: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, str):
            value = value.strip()
        stored[key] = value
    return stored


def _is_onboarded(fields: dict[str, Any]) -> bool:
    return all(fields.get(key) for key in REQUIRED_FOR_ONBOARDING)


def _profile_response(profile_id: UUID, fields: dict[str, Any]) -> ProfileResponse:
    return ProfileResponse(
        id=profile_id,
        name=fields.get("name"),
        birthday=fields.get("birthday"),
        birth_time=fields.get("birth_time"),
        city=fields.get("city"),
        state=fields.get("state"),
        timezone=fields.get("timezone"),
        onboarded=bool(fields.get("onboarded")),
        has_chart=isinstance(fields.get(CHART_CACHE_KEY), list),
    )


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile_endpoint(
    payload: ProfileCreateRequest,
    connection: Any = Depends(get_db_connection),
) -> ProfileResponse:
    """Store the welcome-form details and mark the profile as onboarded."""
    fields = _to_storage(payload.model_dump(exclude_none=True))
    fields["onboarded"] = _is_onboarded(fields)

    async with connection.transaction():
        profile_id = await create_profile(connection)
        await set_fields(connection, profile_id, fields)

    stored = await get_fields(connection, profile_id)
    return _profile_response(profile_id, stored)


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile_endpoint(
    profile_id: UUID,
    connection: Any = Depends(get_db_connection),
) -> ProfileResponse:
    try:
        fields = await get_fields(connection, profile_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return _profile_response(profile_id, fields)


@router.patch("/{profile_id}", response_model=ProfileResponse)
async def update_profile_endpoint(
    profile_id: UUID,
    payload: ProfileUpdateRequest,
    connection: Any = Depends(get_db_connection),
) -> ProfileResponse:
    """
    Partially update birth details.

    Any change to birth data or place drops the cached chart so the next
    chart request fetches a fresh one.
    """
    patch_data = payload.model_dump(exclude_unset=True)
    # null clears optional fields; required ones cannot be cleared.
    cleared = [key for key, value in patch_data.items() if value is None]
    blocked = [key for key in cleared if key in REQUIRED_FOR_ONBOARDING]
    if blocked:
        raise HTTPException(status_code=422, detail=f"Cannot clear required field(s): {', '.join(blocked)}")
    if not patch_data:
        raise HTTPException(status_code=422, detail="At least one field must be provided")

    updates = _to_storage({key: value for key, value in patch_data.items() if value is not None})

    try:
        async with connection.transaction():
            # Field writes and cache invalidation commit together.
            current = await get_fields(connection, profile_id)
            changed = {key for key, value in updates.items() if current.get(key) != value}
            changed.update(key for key in cleared if key in current)

            merged = {**current, **updates}
            for key in cleared:
                merged.pop(key, None)
            updates["onboarded"] = _is_onboarded(merged)

            await set_fields(connection, profile_id, updates)

            stale = [key for key in cleared if key in current]
            if changed & CHART_INPUT_KEYS:
                stale.append(CHART_CACHE_KEY)
            await delete_fields(connection, profile_id, stale)

        fields = await get_fields(connection, profile_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return _profile_response(profile_id, fields)
