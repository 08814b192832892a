from __future__ import annotations

import re
from dataclasses import dataclass

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


@dataclass(slots=True, frozen=True)
class ScreenCoords:
    x: float | None
    y: float | None

    @property
    def is_resolved(self) -> bool:
        return self.x is not None and self.y is not None


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def parse_box_numbers(box_str: str) -> list[float]:
    return [float(n) for n in _NUMBER_RE.findall(box_str or "")]


def format_box(values: list[float] | tuple[float, ...]) -> str:
    """Render a box as ``[x1,y1,x2,y2]`` with JS-style number formatting."""
    parts = []
    for v in values:
        parts.append(str(int(v)) if float(v).is_integer() else repr(float(v)))
    return "[" + ",".join(parts) + "]"


def parse_box_to_screen_coords(
    box_str: str | None,
    screen_width: int,
    screen_height: int,
    scale_factor: float = 1.0,
) -> ScreenCoords:
    """Resolve a normalized box to the pixel position of its center.

    A point-only box (two numbers) is its own center. Anything unparseable resolves
    to ``ScreenCoords(None, None)``; callers must not dispatch pointer actions then.
    """
    numbers = parse_box_numbers(box_str or "")
    if len(numbers) < 2:
        return ScreenCoords(x=None, y=None)
    if len(numbers) < 4:
        x1, y1 = numbers[0], numbers[1]
        x2, y2 = x1, y1
    else:
        x1, y1, x2, y2 = numbers[:4]

    x = ((x1 + x2) / 2) * screen_width * scale_factor
    y = ((y1 + y2) / 2) * screen_height * scale_factor
    return ScreenCoords(x=round(x, 2), y=round(y, 2))
