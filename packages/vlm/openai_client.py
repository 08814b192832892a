from __future__ import annotations

import logging

import httpx

from packages.agent.config import ModelSettings
from packages.contracts.errors import ModelInvocationError

from .base import ChatMessage

logger = logging.getLogger("agent.model.http")


class OpenAICompatibleClient:
    """Chat-completions transport for any OpenAI-compatible VLM endpoint.

    ``base_url`` is the API root, e.g. ``http://localhost:8000/v1``.
    """

    def __init__(self, settings: ModelSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        if not settings.base_url:
            raise ValueError("model base_url is required")
        self._settings = settings
        self._url = settings.base_url.rstrip("/") + "/chat/completions"
        self._transport = transport

    @property
    def model(self) -> str:
        return self._settings.model

    async def complete(self, messages: list[ChatMessage]) -> str:
        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        payload = {
            "model": self._settings.model,
            "messages": messages,
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "stream": False,
        }
        try:
            async with httpx.AsyncClient(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
                resp = await client.post(self._url, json=payload, headers=headers)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ModelInvocationError(
                f"model endpoint returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ModelInvocationError(f"model request failed: {exc}") from exc

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ModelInvocationError("model response has no choices[0].message.content") from exc
        logger.debug("completion chars=%s", len(content or ""))
        return (content or "").strip()


class StubModelClient:
    """Offline stand-in used when no endpoint is configured: always hands control back."""

    def __init__(self, prediction: str | None = None) -> None:
        self.prediction = prediction or "Thought: No model endpoint is configured.\nAction: call_user()"
        self.model = "stub"

    async def complete(self, messages: list[ChatMessage]) -> str:
        _ = messages
        return self.prediction
