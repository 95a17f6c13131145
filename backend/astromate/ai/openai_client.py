"""Minimal chat-completion client for JSON-mode requests with retry handling."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class ChatCompletionError(Exception):
    """Base exception for chat-completion client errors."""


class ChatCompletionRequestError(ChatCompletionError):
    """Raised when the chat-completion request fails."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class ChatCompletionResponseError(ChatCompletionError):
    """Raised when the response envelope cannot be parsed."""


@dataclass
class ChatCompletionResult:
    """First choice of a chat-completion response."""

    content: str
    model: str
    finish_reason: str | None


def extract_message_content(envelope: Any) -> str:
    """Return `choices[0].message.content` from a chat-completion envelope."""
    if not isinstance(envelope, dict):
        raise ChatCompletionResponseError("Chat completion response is not a JSON object")

    choices = envelope.get("choices") or []
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise ChatCompletionResponseError("Chat completion response missing choices")

    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content.strip():
        raise ChatCompletionResponseError("Chat completion response missing message content")

    return content


class ChatCompletionClient:
    """Thin client for `POST /chat/completions` with `response_format=json_object`."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        max_tokens: int = 500,
        timeout_seconds: int = 30,
        max_retries: int = 2,
        retry_backoff_seconds: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.transport = transport

    def build_body(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        return {
            "model": self.model,
            "response_format": {"type": "json_object"},
            "messages": messages,
            "max_tokens": self.max_tokens,
        }

    async def complete_json(self, messages: list[dict[str, str]]) -> ChatCompletionResult:
        """Send one JSON-mode completion and return the first choice."""
        url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        body = self.build_body(messages)

        for attempt in range(self.max_retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout_seconds,
                    transport=self.transport,
                ) as client:
                    response = await client.post(url, headers=headers, json=body)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                logger.warning("Chat completion transport error (attempt %s): %s", attempt + 1, exc)
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_backoff_seconds * (2**attempt))
                    continue
                raise ChatCompletionRequestError(503, "Chat completion request failed") from exc

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                logger.warning(
                    "Chat completion returned %s (attempt %s), retrying",
                    response.status_code,
                    attempt + 1,
                )
                await asyncio.sleep(self.retry_backoff_seconds * (2**attempt))
                continue

            if response.status_code >= 400:
                raise ChatCompletionRequestError(response.status_code, response.text)

            try:
                payload = response.json()
            except ValueError as exc:
                raise ChatCompletionResponseError("Invalid JSON from chat completion provider") from exc

            content = extract_message_content(payload)
            if payload["choices"][0].get("finish_reason") == "length":
                logger.warning("Chat completion truncated at max_tokens=%s", self.max_tokens)

            return ChatCompletionResult(
                content=content,
                model=str(payload.get("model") or self.model),
                finish_reason=payload["choices"][0].get("finish_reason"),
            )

        raise ChatCompletionRequestError(503, "Chat completion request failed")
