"""Relay client for the hosted conversation assistant.

The assistant keeps its own threads: the first reply carries a `thread_id`
that later messages and the final `close` action send back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

import httpx

logger = logging.getLogger(__name__)

AssistantAction = Literal["message", "close"]


class AssistantError(Exception):
    """Base exception for conversation assistant errors."""


class AssistantRequestError(AssistantError):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class AssistantResponseError(AssistantError):
    """Raised when the assistant reply has no `response` text."""


@dataclass
class AssistantReply:
    response: str | None
    thread_id: str | None


def parse_reply(payload: Any, *, action: AssistantAction) -> AssistantReply:
    if not isinstance(payload, dict):
        raise AssistantResponseError("Assistant response is not a JSON object")

    response = payload.get("response")
    thread_id = payload.get("thread_id")
    if not isinstance(thread_id, str) or not thread_id:
        thread_id = None

    if isinstance(response, str):
        return AssistantReply(response=response, thread_id=thread_id)

    # `close` acknowledgements may omit the response text.
    if action == "close":
        return AssistantReply(response=None, thread_id=thread_id)

    raise AssistantResponseError("Assistant response missing reply text")


class AssistantClient:
    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def send(
        self,
        user_input: str,
        action: AssistantAction = "message",
        thread_id: str | None = None,
    ) -> AssistantReply:
        body: dict[str, Any] = {"user_input": user_input, "action": action}
        if thread_id:
            body["thread_id"] = thread_id

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.post(self.url, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Assistant %s request failed: %s", action, exc)
            raise AssistantRequestError(503, "Assistant request failed") from exc

        if response.status_code >= 400:
            logger.warning("Assistant returned %s: %s", response.status_code, response.text)
            raise AssistantRequestError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise AssistantResponseError("Invalid JSON from assistant") from exc

        return parse_reply(payload, action=action)
