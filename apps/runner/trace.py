from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from packages.agent.config import use_config
from packages.contracts.models import ExecuteParams, ScreenshotOutput, SessionSnapshot
from packages.contracts.utils import elide_screenshots, now_ms
from packages.perception.image_utils import save_base64_png

logger = logging.getLogger("runner.trace")


class TraceRecorder:
    """Hook + data sink that dumps one run to ``<trace_dir>/trace-<run_id>.json``."""

    name = "trace"

    def __init__(self, trace_dir: str | Path, save_screenshots: bool = False) -> None:
        self.trace_dir = Path(trace_dir)
        self.save_screenshots = save_screenshots
        self.events: list[dict[str, Any]] = []
        self.actions: list[dict[str, Any]] = []
        self.screenshots = 0
        self.path: Path | None = None

    def on_data(self, snapshot: SessionSnapshot) -> None:
        self.events.append(elide_screenshots(snapshot).model_dump(mode="json", by_alias=True))

    async def init(self) -> None:
        self.trace_dir.mkdir(parents=True, exist_ok=True)

    async def on_screenshot(self, screenshot: ScreenshotOutput) -> None:
        self.screenshots += 1
        if self.save_screenshots:
            run_id = use_config().run_id
            save_base64_png(screenshot.base64, self.trace_dir / f"{run_id}-{self.screenshots:03d}.png")

    async def on_operator_action(self, params: ExecuteParams) -> None:
        self.actions.append(
            {
                "ts": now_ms(),
                "action_type": params.action_type,
                "action_inputs": params.action_inputs,
                "thought": params.parsed_prediction.thought,
            }
        )

    async def cleanup(self) -> None:
        self.path = self.write(use_config().run_id)

    def write(self, run_id: str) -> Path:
        self.trace_dir.mkdir(parents=True, exist_ok=True)
        path = self.trace_dir / f"trace-{run_id}.json"
        payload = {"run_id": run_id, "events": self.events, "actions": self.actions}
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("trace written path=%s events=%s", path, len(self.events))
        return path
