from __future__ import annotations

import asyncio
import logging

from packages.action_parser import parse_action_text
from packages.action_parser.parser import Factor
from packages.agent.config import ModelSettings, use_config
from packages.contracts.cancellation import run_cancellable
from packages.contracts.errors import RunCancelled
from packages.contracts.models import IMAGE_PLACEHOLDER, InvokeOutput, InvokeParams
from packages.perception.image_utils import strip_data_url

from .base import ChatMessage, ModelClient
from .openai_client import OpenAICompatibleClient, StubModelClient

logger = logging.getLogger("agent.model")


def to_openai_messages(params: InvokeParams) -> list[ChatMessage]:
    """Expand image slots into ``image_url`` parts, consuming ``params.images`` in order."""
    images = iter(params.images)
    messages: list[ChatMessage] = []
    for msg in params.conversations:
        if msg.content == IMAGE_PLACEHOLDER:
            image = next(images, None)
            if image is None:
                continue
            url = f"data:image/png;base64,{strip_data_url(image)}"
            messages.append({"role": msg.role, "content": [{"type": "image_url", "image_url": {"url": url}}]})
        else:
            messages.append({"role": msg.role, "content": msg.content})
    return messages


class UITarsModel:
    """Model adapter: messages in, ``{prediction, parsed_predictions}`` out."""

    def __init__(self, client: ModelClient, model_name: str = "ui-tars", factor: Factor = 1000) -> None:
        self.client = client
        self._model_name = model_name
        self.factor = factor

    @property
    def model_name(self) -> str:
        return self._model_name

    async def invoke(self, params: InvokeParams, signal: asyncio.Event | None = None) -> InvokeOutput:
        log = use_config().log
        messages = to_openai_messages(params)
        try:
            prediction = await run_cancellable(self.client.complete(messages), signal)
        except RunCancelled:
            log.info("model call aborted by cancellation")
            return InvokeOutput()

        parsed = parse_action_text(
            prediction,
            factor=self.factor,
            screen_context=params.screen_context,
            scale_factor=params.scale_factor,
        ).parsed
        return InvokeOutput(prediction=prediction, parsed_predictions=parsed)


def build_client(settings: ModelSettings) -> ModelClient:
    if not settings.base_url:
        logger.warning("no model endpoint configured, using stub model client")
        return StubModelClient()
    return OpenAICompatibleClient(settings)


def build_model(settings: ModelSettings) -> UITarsModel:
    client = build_client(settings)
    name = "stub" if isinstance(client, StubModelClient) else settings.model
    return UITarsModel(client, model_name=name, factor=settings.factor)
