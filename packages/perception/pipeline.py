from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from packages.contracts.models import ExecuteParams, ScreenshotOutput

from .image_utils import decode_base64_image
from .ocr import extract_ocr_tokens, tokens_to_text

logger = logging.getLogger("perception.pipeline")

DEFAULT_EXTRACTION_CONCURRENCY = 100


@dataclass(slots=True)
class ExtractionResult:
    content: str
    token_count: int = 0
    title: str | None = None
    url: str | None = None


Extractor = Callable[[ScreenshotOutput], Awaitable[ExtractionResult]]


def _ocr_base64(screenshot_base64: str) -> ExtractionResult:
    tokens = extract_ocr_tokens(decode_base64_image(screenshot_base64))
    return ExtractionResult(content=tokens_to_text(tokens), token_count=len(tokens))


async def ocr_extractor(screenshot: ScreenshotOutput) -> ExtractionResult:
    return await asyncio.to_thread(_ocr_base64, screenshot.base64)


class ExtractionQueue:
    """Runs deferred extractions with at most ``concurrency`` in flight; the rest wait."""

    def __init__(self, concurrency: int = DEFAULT_EXTRACTION_CONCURRENCY) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = concurrency
        self._sem = asyncio.Semaphore(concurrency)
        self._tasks: list[asyncio.Task] = []
        self.active = 0
        self.peak = 0

    def submit(self, fn: Callable[..., Awaitable[Any]], *args: Any) -> asyncio.Task:
        task = asyncio.create_task(self._run(fn, *args))
        self._tasks.append(task)
        return task

    async def _run(self, fn: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        async with self._sem:
            self.active += 1
            self.peak = max(self.peak, self.active)
            try:
                return await fn(*args)
            finally:
                self.active -= 1

    async def join(self) -> None:
        await asyncio.gather(*self._tasks, return_exceptions=True)


@dataclass(slots=True)
class OperationStep:
    index: int
    width: int
    height: int
    scale_factor: float
    thought: str | None = None
    actions: list[str] = field(default_factory=list)
    extraction: ExtractionResult | None = None
    screenshot_base64: str | None = None
    _pending: asyncio.Task | None = field(default=None, repr=False)


class OperationStepRecorder:
    """Hook that turns each screenshot into an operation step with deferred extraction."""

    name = "operation_steps"

    def __init__(
        self,
        queue: ExtractionQueue | None = None,
        extractor: Extractor | None = ocr_extractor,
        keep_screenshots: bool = False,
    ) -> None:
        self.queue = queue or ExtractionQueue()
        self.extractor = extractor
        self.keep_screenshots = keep_screenshots
        self.steps: list[OperationStep] = []

    async def on_screenshot(self, screenshot: ScreenshotOutput) -> None:
        step = OperationStep(
            index=len(self.steps),
            width=screenshot.width,
            height=screenshot.height,
            scale_factor=screenshot.scale_factor,
            screenshot_base64=screenshot.base64 if self.keep_screenshots else None,
        )
        if self.extractor is not None:
            step._pending = self.queue.submit(self.extractor, screenshot)
        self.steps.append(step)

    async def on_operator_action(self, params: ExecuteParams) -> None:
        if not self.steps:
            return
        step = self.steps[-1]
        if step.thought is None:
            step.thought = params.parsed_prediction.thought
        step.actions.append(params.action_type)

    async def collect(self) -> list[OperationStep]:
        """Wait for every deferred extraction; a failed one leaves ``extraction`` as None."""
        for step in self.steps:
            if step._pending is None:
                continue
            try:
                step.extraction = await step._pending
            except Exception as exc:
                logger.warning("extraction failed step=%s error=%s", step.index, exc)
                step.extraction = None
            step._pending = None
        return self.steps
