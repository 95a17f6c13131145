"""Conversation relay to the hosted assistant plus the home-screen starters."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from .ai.assistant_client import AssistantClient, AssistantError, AssistantRequestError
from .config import settings

router = APIRouter(prefix="/conversations", tags=["conversations"])

StarterKind = Literal["conversation", "compatibility", "chart"]


class ConversationStarter(BaseModel):
    position: int
    emoji: str
    label: str
    kind: StarterKind
    opening_message: str | None = None


# Home-screen grid, in display order.
STARTERS = [
    ConversationStarter(position=1, emoji="🛒", label="Page 1", kind="conversation",
                        opening_message="What kind of food do you want to eat?"),
    ConversationStarter(position=2, emoji="📱", label="Page 2", kind="conversation",
                        opening_message="What tech gadget are you looking for?"),
    ConversationStarter(position=3, emoji="💻", label="Page 3", kind="conversation",
                        opening_message="Need help with software issues?"),
    ConversationStarter(position=4, emoji="🌍", label="Page 4", kind="conversation",
                        opening_message="Discover places around the world!"),
    ConversationStarter(position=5, emoji="🎮", label="Compatibility", kind="compatibility"),
    ConversationStarter(position=6, emoji="🎨", label="Astrological Chart", kind="chart"),
]


class ConversationMessageRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)
    thread_id: str | None = Field(default=None, max_length=200)


class ConversationMessageResponse(BaseModel):
    reply: str
    thread_id: str | None = None


class ConversationCloseResponse(BaseModel):
    thread_id: str
    closed: bool = True


def _get_assistant_client() -> AssistantClient:
    return AssistantClient(url=settings.assistant_api_url)


def _require_assistant() -> None:
    if not settings.assistant_api_url:
        raise HTTPException(
            status_code=503,
            detail="Conversations are unavailable because ASSISTANT_API_URL is not configured.",
        )


def _provider_error(exc: AssistantError) -> HTTPException:
    if isinstance(exc, AssistantRequestError) and exc.status_code == 429:
        return HTTPException(status_code=503, detail="The assistant is rate-limited right now. Try again shortly.")
    if isinstance(exc, AssistantRequestError):
        return HTTPException(status_code=502, detail="The assistant request failed. Please try again.")
    return HTTPException(status_code=502, detail="The assistant response could not be processed.")


@router.get("/starters", response_model=list[ConversationStarter])
def list_starters() -> list[ConversationStarter]:
    return STARTERS


@router.post("/messages", response_model=ConversationMessageResponse)
async def send_message(payload: ConversationMessageRequest) -> ConversationMessageResponse:
    """
    Forward one user message to the assistant.

    Omit `thread_id` to start a new thread; the reply carries the id to send
    back with later messages.
    """
    message_text = payload.message.strip()
    if not message_text:
        raise HTTPException(status_code=422, detail="message must not be empty")

    _require_assistant()

    try:
        reply = await _get_assistant_client().send(message_text, "message", payload.thread_id)
    except AssistantError as exc:
        raise _provider_error(exc) from exc

    return ConversationMessageResponse(
        reply=reply.response or "",
        thread_id=reply.thread_id or payload.thread_id,
    )


@router.post("/{thread_id}/close", response_model=ConversationCloseResponse)
async def close_conversation(thread_id: str) -> ConversationCloseResponse:
    """Tell the assistant the user left the conversation."""
    _require_assistant()

    try:
        await _get_assistant_client().send("", "close", thread_id)
    except AssistantError as exc:
        raise _provider_error(exc) from exc

    return ConversationCloseResponse(thread_id=thread_id)
