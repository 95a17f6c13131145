"""Compatibility analysis endpoint: prompt the assistant, decode its JSON report."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from .ai.compatibility_prompt import build_messages, build_user_prompt
from .ai.openai_client import ChatCompletionClient, ChatCompletionError, ChatCompletionRequestError
from .config import settings
from .database import get_db_connection
from .services.compatibility_normalizer import DecodeError, decode_report_text, report_to_dict
from .services.profile_store import get_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/compatibility", tags=["compatibility"])

CompatibilityType = Literal["friendship", "partner"]


class CompatibilityRequest(BaseModel):
    profile_id: UUID
    compatibility_type: CompatibilityType
    partner_name: str = Field(min_length=1, max_length=120)
    partner_birthday: date


class AspectItem(BaseModel):
    title: str
    description: str


class SectionItem(BaseModel):
    aspects: list[AspectItem] = Field(default_factory=list)


class TipItem(BaseModel):
    tip: str
    description: str


class CompatibilityReportResponse(BaseModel):
    strengths: SectionItem
    weaknesses: SectionItem
    tips: list[TipItem] = Field(default_factory=list)


class CompatibilityResponse(BaseModel):
    compatibility_type: CompatibilityType
    partner_name: str
    report: CompatibilityReportResponse


def _get_chat_client() -> ChatCompletionClient:
    return ChatCompletionClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        max_tokens=settings.openai_max_tokens,
    )


@router.post("", response_model=CompatibilityResponse)
async def compatibility_endpoint(
    payload: CompatibilityRequest,
    connection: Any = Depends(get_db_connection),
) -> CompatibilityResponse:
    """
    Ask the assistant for a friendship or partner compatibility summary.

    Example request:
    {
      "profile_id": "...",
      "compatibility_type": "partner",
      "partner_name": "Blake",
      "partner_birthday": "2003-10-21"
    }

    The report is built fresh for every request and is not stored.
    """
    partner_name = payload.partner_name.strip()
    if not partner_name:
        raise HTTPException(status_code=422, detail="partner_name must not be empty")

    if not settings.openai_api_key:
        raise HTTPException(
            status_code=503,
            detail="Compatibility summaries are unavailable because OPENAI_API_KEY is not configured.",
        )

    try:
        fields = await get_fields(connection, payload.profile_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    if not fields.get("onboarded") or not fields.get("birthday"):
        raise HTTPException(status_code=409, detail="Complete your profile before requesting compatibility.")

    user_prompt = build_user_prompt(
        user_name=str(fields.get("name") or "N/A"),
        user_birthday=date.fromisoformat(str(fields["birthday"])),
        partner_name=partner_name,
        partner_birthday=payload.partner_birthday,
        compatibility_type=payload.compatibility_type,
    )

    client = _get_chat_client()
    try:
        result = await client.complete_json(build_messages(user_prompt))
        report = decode_report_text(result.content)
    except ChatCompletionRequestError as exc:
        if exc.status_code == 429:
            raise HTTPException(status_code=503, detail="The assistant is rate-limited right now. Try again shortly.") from exc
        raise HTTPException(status_code=502, detail="The assistant request failed. Please try again.") from exc
    except ChatCompletionError as exc:
        raise HTTPException(status_code=502, detail="The assistant response could not be processed.") from exc
    except DecodeError as exc:
        logger.warning("Compatibility report rejected at %r: %s", exc.path, exc)
        raise HTTPException(
            status_code=502,
            detail=f"The assistant returned an incomplete compatibility report ({exc}). Please try again.",
        ) from exc

    return CompatibilityResponse(
        compatibility_type=payload.compatibility_type,
        partner_name=partner_name,
        report=CompatibilityReportResponse(**report_to_dict(report)),
    )
