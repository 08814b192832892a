"""Model invocation adapter and transports."""

from .base import ActionModel, ModelClient
from .extraction import format_steps, summarize_steps, vlm_extractor
from .model import UITarsModel, build_client, build_model, to_openai_messages
from .openai_client import OpenAICompatibleClient, StubModelClient

__all__ = [
    "ActionModel",
    "ModelClient",
    "OpenAICompatibleClient",
    "StubModelClient",
    "UITarsModel",
    "build_client",
    "build_model",
    "format_steps",
    "summarize_steps",
    "to_openai_messages",
    "vlm_extractor",
]
