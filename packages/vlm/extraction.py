"""Screenshot extraction and step summaries backed by a chat model."""

from __future__ import annotations

import logging
from typing import Sequence

from packages.contracts.models import ScreenshotOutput
from packages.perception.image_utils import strip_data_url
from packages.perception.pipeline import ExtractionResult, Extractor, OperationStep

from .base import ChatMessage, ModelClient

logger = logging.getLogger("agent.model.extraction")

EXTRACTION_SYSTEM_PROMPT = "Extract key information from the screenshot and format it in Markdown."
EXTRACTION_USER_TEXT = "Extract key information from this image:"
SUMMARY_SYSTEM_PROMPT = (
    "Summarize the key information from the operation steps. "
    "Highlight the final information the user will care about most."
)


def vlm_extractor(client: ModelClient) -> Extractor:
    async def extract(screenshot: ScreenshotOutput) -> ExtractionResult:
        url = f"data:image/png;base64,{strip_data_url(screenshot.base64)}"
        messages: list[ChatMessage] = [
            {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": EXTRACTION_USER_TEXT},
                    {"type": "image_url", "image_url": {"url": url}},
                ],
            },
        ]
        content = await client.complete(messages)
        return ExtractionResult(content=content, token_count=len(content.split()))

    return extract


def format_steps(instruction: str, steps: Sequence[OperationStep]) -> str:
    blocks = []
    for n, step in enumerate(steps, start=1):
        lines = [f"User intent: {instruction}", f"Step {n}:"]
        if step.thought:
            lines.append(f"Thought: {step.thought}")
        if step.extraction is not None and step.extraction.content:
            lines.append(f"Extracted Info: {step.extraction.content}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


async def summarize_steps(client: ModelClient, instruction: str, steps: Sequence[OperationStep]) -> str:
    """One summary model call over the collected steps; ``""`` when there are none."""
    if not steps:
        return ""
    messages: list[ChatMessage] = [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
        {"role": "user", "content": format_steps(instruction, steps)},
    ]
    summary = await client.complete(messages)
    logger.info("summarized steps=%s chars=%s", len(steps), len(summary))
    return summary
