from __future__ import annotations

import logging
import time
from typing import Any

from packages.agent.surface import require_point, split_hotkey, split_type_content
from packages.contracts.models import ExecuteParams

logger = logging.getLogger("runner.input")

SCROLL_CLICKS = 5
WAIT_SECONDS = 1.0

PlannedCall = tuple[str, tuple[Any, ...], dict[str, Any]]


class DesktopInputExecutor:
    """Turns one parsed action into pyautogui calls.

    ``coordinate_scale`` maps logical screen pixels to the pixels pyautogui
    expects (1.0 wherever the OS reports logical coordinates).
    """

    def __init__(self, dry_run: bool = True, coordinate_scale: float = 1.0) -> None:
        self.dry_run = dry_run
        self.coordinate_scale = coordinate_scale
        self._pyautogui = None
        if not dry_run:
            try:
                import pyautogui
            except ImportError as exc:
                raise RuntimeError("pyautogui required for non-dry-run mode") from exc
            self._pyautogui = pyautogui

    def plan(self, params: ExecuteParams) -> list[PlannedCall]:
        """pyautogui calls for ``params``; empty for no-op and unsupported actions."""
        inputs = params.action_inputs
        scale = self.coordinate_scale
        match params.action_type:
            case "click" | "left_single" | "left_click":
                return [("click", require_point(params, "start_box", scale), {})]
            case "left_double" | "double_click":
                return [("doubleClick", require_point(params, "start_box", scale), {})]
            case "right_single" | "right_click":
                return [("rightClick", require_point(params, "start_box", scale), {})]
            case "hover" | "mouse_move":
                return [("moveTo", require_point(params, "start_box", scale), {})]
            case "drag" | "select" | "left_click_drag":
                start = require_point(params, "start_box", scale)
                end = require_point(params, "end_box", scale)
                return [("moveTo", start, {}), ("dragTo", end, {"duration": 0.2, "button": "left"})]
            case "type":
                text, submit = split_type_content(inputs.get("content"))
                calls: list[PlannedCall] = []
                if text:
                    calls.append(("write", (text,), {"interval": 0.01}))
                if submit:
                    calls.append(("press", ("enter",), {}))
                return calls
            case "hotkey":
                keys = split_hotkey(inputs.get("key") or inputs.get("hotkey"))
                return [("hotkey", tuple(keys), {})] if keys else []
            case "scroll":
                calls = []
                if inputs.get("start_box"):
                    calls.append(("moveTo", require_point(params, "start_box", scale), {}))
                direction = (inputs.get("direction") or "down").strip().lower()
                match direction:
                    case "up":
                        calls.append(("scroll", (SCROLL_CLICKS,), {}))
                    case "down":
                        calls.append(("scroll", (-SCROLL_CLICKS,), {}))
                    case "left":
                        calls.append(("hscroll", (-SCROLL_CLICKS,), {}))
                    case "right":
                        calls.append(("hscroll", (SCROLL_CLICKS,), {}))
                    case _:
                        logger.warning("unknown scroll direction=%s", direction)
                return calls
            case "wait" | "finished" | "call_user" | "error_env":
                return []
            case _:
                logger.warning("unsupported action=%s", params.action_type)
                return []

    def execute(self, params: ExecuteParams) -> str:
        calls = self.plan(params)
        if self.dry_run:
            logger.info("dry-run execute action=%s calls=%s", params.action_type, calls)
            return f"dry-run:{params.action_type}"

        if params.action_type == "wait":
            time.sleep(WAIT_SECONDS)
        assert self._pyautogui is not None
        for name, args, kwargs in calls:
            getattr(self._pyautogui, name)(*args, **kwargs)
        return f"executed:{params.action_type}"
