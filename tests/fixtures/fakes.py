from __future__ import annotations

import asyncio
from typing import Callable

from apps.runner.adapters.input import DesktopInputExecutor
from packages.action_parser import parse_action_text
from packages.contracts.models import ExecuteParams, InvokeOutput, InvokeParams, ScreenshotOutput

from tests.fixtures.sample_data import SAMPLE_PNG_BASE64


def valid_screenshot(width: int = 1920, height: int = 1080, scale_factor: float = 1.0) -> ScreenshotOutput:
    return ScreenshotOutput(base64=SAMPLE_PNG_BASE64, width=width, height=height, scale_factor=scale_factor)


class FakeSurface:
    def __init__(
        self,
        valid: bool = True,
        screenshot_errors: list[Exception] | None = None,
        execute_errors: list[Exception] | None = None,
        on_execute: Callable[[ExecuteParams], None] | None = None,
    ) -> None:
        self.valid = valid
        self.screenshot_errors = list(screenshot_errors or [])
        self.execute_errors = list(execute_errors or [])
        self.on_execute = on_execute
        self.screenshot_calls = 0
        self.execute_calls = 0
        self.executed: list[ExecuteParams] = []

    async def screenshot(self) -> ScreenshotOutput:
        self.screenshot_calls += 1
        if self.screenshot_errors:
            raise self.screenshot_errors.pop(0)
        return valid_screenshot() if self.valid else ScreenshotOutput()

    async def execute(self, params: ExecuteParams) -> None:
        self.execute_calls += 1
        if self.execute_errors:
            raise self.execute_errors.pop(0)
        self.executed.append(params)
        if self.on_execute is not None:
            self.on_execute(params)


class ScriptedModel:
    """Replays predictions in order; the last one repeats."""

    model_name = "scripted"

    def __init__(self, predictions: list[str], errors: list[Exception] | None = None) -> None:
        self.predictions = list(predictions)
        self.errors = list(errors or [])
        self.calls = 0
        self.params: list[InvokeParams] = []

    async def invoke(self, params: InvokeParams, signal: asyncio.Event | None = None) -> InvokeOutput:
        self.calls += 1
        self.params.append(params)
        if self.errors:
            raise self.errors.pop(0)
        text = self.predictions[min(self.calls - 1, len(self.predictions) - 1)]
        return InvokeOutput(prediction=text, parsed_predictions=parse_action_text(text).parsed)


class DesktopDryRunSurface(FakeSurface):
    """Fake frames, real dry-run input planning (coordinates are resolved)."""

    def __init__(self) -> None:
        super().__init__()
        self.executor = DesktopInputExecutor(dry_run=True)

    async def execute(self, params: ExecuteParams) -> None:
        await super().execute(params)
        self.executor.execute(params)


class RecordingClient:
    """Chat client that records every message list and answers with ``reply``."""

    def __init__(self, reply: str = "ok") -> None:
        self.reply = reply
        self.calls: list[list[dict]] = []

    async def complete(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        return self.reply
