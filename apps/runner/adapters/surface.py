from __future__ import annotations

import asyncio
import logging

from packages.contracts.models import ExecuteParams, ScreenshotOutput

from .input import DesktopInputExecutor
from .screen import capture_screen

logger = logging.getLogger("runner.desktop")


class DesktopSurface:
    """The local desktop: Pillow for frames, pyautogui for input (dry-run by default)."""

    def __init__(
        self,
        dry_run: bool = True,
        scale_factor: float = 1.0,
        executor: DesktopInputExecutor | None = None,
    ) -> None:
        self.scale_factor = scale_factor
        self.executor = executor or DesktopInputExecutor(dry_run=dry_run)

    async def screenshot(self) -> ScreenshotOutput:
        return await asyncio.to_thread(capture_screen, self.scale_factor)

    async def execute(self, params: ExecuteParams) -> None:
        result = await asyncio.to_thread(self.executor.execute, params)
        logger.debug("execute result=%s", result)
