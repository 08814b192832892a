from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

from packages.contracts.coordinates import ScreenCoords, parse_box_to_screen_coords
from packages.contracts.errors import MissingCoordinatesError
from packages.contracts.models import ExecuteParams, ScreenshotOutput

_KEY_CANONICAL = {
    "return": "enter",
    "escape": "esc",
    "arrowup": "up",
    "arrowdown": "down",
    "arrowleft": "left",
    "arrowright": "right",
    "control": "ctrl",
    "command": "cmd",
    "meta": "cmd",
    "page_down": "pagedown",
    "page_up": "pageup",
}


@runtime_checkable
class Surface(Protocol):
    """A controllable screen: one run owns one instance for its whole duration."""

    async def screenshot(self) -> ScreenshotOutput:
        ...

    async def execute(self, params: ExecuteParams) -> None:
        ...


def resolve_point(params: ExecuteParams, key: str = "start_box", scale_factor: float | None = None) -> ScreenCoords:
    factor = params.scale_factor if scale_factor is None else scale_factor
    return parse_box_to_screen_coords(
        params.action_inputs.get(key, ""), params.screen_width, params.screen_height, factor
    )


def require_point(params: ExecuteParams, key: str = "start_box", scale_factor: float | None = None) -> tuple[int, int]:
    coords = resolve_point(params, key, scale_factor)
    if not coords.is_resolved:
        raise MissingCoordinatesError(params.action_type)
    return int(round(coords.x)), int(round(coords.y))


def split_type_content(content: str | None) -> tuple[str, bool]:
    """Return (text to type, press Enter afterwards).

    A trailing newline, literal ``\\n`` included, means submit.
    """
    text = (content or "").strip()
    if text.endswith("\\n"):
        return text[:-2], True
    if text.endswith("\n"):
        return text[:-1], True
    return text, False


def split_hotkey(key_str: str | None) -> list[str]:
    raw = (key_str or "").strip().lower()
    raw = re.sub(r"page\s+(up|down)", r"page\1", raw)
    keys = [k for k in re.split(r"[\s+]+", raw) if k]
    return [_KEY_CANONICAL.get(k, k) for k in keys]
