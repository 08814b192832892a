from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from packages.contracts.models import (
    IMAGE_PLACEHOLDER,
    Conversation,
    InvokeParams,
    ScreenshotOutput,
    ScreenSize,
    VlmMessage,
)

from .constants import MAX_IMAGE_LENGTH, OMITTED_IMAGE_TEXT


@dataclass(slots=True)
class VlmModelFormat:
    conversations: list[VlmMessage] = field(default_factory=list)
    images: list[str] = field(default_factory=list)


def to_vlm_model_format(conversations: Sequence[Conversation], system_prompt: str) -> VlmModelFormat:
    """Project the turn history into role-tagged messages plus the ordered image list.

    The system prompt is prepended to the opening instruction turn.
    """
    out = VlmModelFormat()
    for idx, conv in enumerate(conversations):
        if conv.from_ == "gpt":
            out.conversations.append(VlmMessage(role="assistant", content=conv.value))
            continue
        if conv.screenshot_base64:
            out.conversations.append(VlmMessage(role="user", content=IMAGE_PLACEHOLDER))
            out.images.append(conv.screenshot_base64)
        elif idx == 0:
            out.conversations.append(VlmMessage(role="user", content=f"{system_prompt}{conv.value}"))
        else:
            out.conversations.append(VlmMessage(role="user", content=conv.value))
    return out


def process_vlm_params(
    conversations: list[VlmMessage],
    images: list[str],
    max_image_length: int = MAX_IMAGE_LENGTH,
) -> VlmModelFormat:
    """Keep only the newest ``max_image_length`` images.

    Image slots whose screenshot was dropped become text placeholders, so the
    textual history stays complete and the remaining slots still line up with
    ``images`` in order.
    """
    if len(images) <= max_image_length:
        return VlmModelFormat(conversations=list(conversations), images=list(images))

    excess = len(images) - max_image_length
    kept_images = images[excess:]
    messages: list[VlmMessage] = []
    for msg in conversations:
        if excess > 0 and msg.content == IMAGE_PLACEHOLDER:
            messages.append(VlmMessage(role=msg.role, content=OMITTED_IMAGE_TEXT))
            excess -= 1
        else:
            messages.append(msg)
    return VlmModelFormat(conversations=messages, images=kept_images)


def build_invoke_params(
    conversations: Sequence[Conversation],
    system_prompt: str,
    screenshot: ScreenshotOutput,
    max_image_length: int = MAX_IMAGE_LENGTH,
) -> InvokeParams:
    model_format = to_vlm_model_format(conversations, system_prompt)
    windowed = process_vlm_params(model_format.conversations, model_format.images, max_image_length)
    return InvokeParams(
        conversations=windowed.conversations,
        images=windowed.images,
        screen_context=ScreenSize(width=screenshot.width, height=screenshot.height),
        scale_factor=screenshot.scale_factor,
    )
