"""Parser for the ``Thought: ... / Action: name(k='v')`` text the model emits."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from packages.contracts.coordinates import (
    clamp_unit,
    format_box,
    parse_box_numbers,
    parse_box_to_screen_coords,
)
from packages.contracts.models import ParsedAction, ScreenSize

Factor = float | int | tuple[float, float] | list[float]

_ACTION_MARK = re.compile(r"^[ \t]*Action:", re.M)
_REFLECTION_RE = re.compile(r"Reflection:\s*(.*?)(?=\s*(?:Action_Summary:|Thought:)|$)", re.S)
_THOUGHT_RE = re.compile(r"(?:Thought|Action_Summary):\s*(.*)$", re.S)
_REFLECTION_BLOCK_RE = re.compile(r"Reflection:.*?(?=Action_Summary:|Action:|$)", re.S)
_CALL_START = re.compile(r"\s*([A-Za-z_]\w*)\s*\(")
_BARE_NAME = re.compile(r"\s*([A-Za-z_]\w*)")
_KEY_RE = re.compile(r"\s*([A-Za-z_]\w*)\s*=\s*")
_VALUE_END = re.compile(r"\s*(?:,\s*[A-Za-z_]\w*\s*=|,?\s*\)|$)")

BOX_DECIMALS = 3


@dataclass(slots=True)
class ParseResult:
    parsed: list[ParsedAction] = field(default_factory=list)


def _factors(factor: Factor) -> tuple[float, float]:
    if isinstance(factor, (tuple, list)):
        fx, fy = factor
        return float(fx), float(fy)
    return float(factor), float(factor)


def normalize_box(raw: str, factor: Factor) -> str:
    """Turn ``'(x,y)'`` / ``'[x1,y1,x2,y2]'`` in model space into a [0,1] 4-tuple string.

    Returns ``""`` when fewer than two numbers are present.
    """
    numbers = parse_box_numbers(raw)
    if len(numbers) < 2:
        return ""
    if len(numbers) < 4:
        numbers = [numbers[0], numbers[1], numbers[0], numbers[1]]
    fx, fy = _factors(factor)
    scaled = []
    for idx, num in enumerate(numbers[:4]):
        denom = fx if idx % 2 == 0 else fy
        scaled.append(round(clamp_unit(num / denom), BOX_DECIMALS))
    return format_box(scaled)


def _read_quoted(text: str, pos: int) -> tuple[str, int]:
    quote = text[pos]
    i = pos + 1
    buf: list[str] = []
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) and text[i + 1] == quote:
            buf.append(quote)
            i += 2
            continue
        # A quote only closes the value when the argument list can continue after it,
        # so apostrophes inside free text survive.
        if ch == quote and _VALUE_END.match(text, i + 1):
            return "".join(buf), i + 1
        buf.append(ch)
        i += 1
    return "".join(buf), i


def _read_bare(text: str, pos: int) -> tuple[str, int]:
    depth = 0
    i = pos
    while i < len(text):
        ch = text[i]
        if ch in "([":
            depth += 1
        elif ch in ")]":
            if depth == 0:
                break
            depth -= 1
        elif ch == "," and depth == 0:
            break
        i += 1
    return text[pos:i].strip(), i


def _parse_call(text: str, pos: int) -> tuple[str, dict[str, str], int] | None:
    """Parse ``name(k='v', ...)`` starting at ``pos``; returns (name, args, end)."""
    m = _CALL_START.match(text, pos)
    if not m:
        return None
    name = m.group(1)
    i = m.end()
    args: dict[str, str] = {}
    while i < len(text):
        while i < len(text) and text[i] in " \t\r\n,":
            i += 1
        if i >= len(text):
            break
        if text[i] == ")":
            i += 1
            break
        km = _KEY_RE.match(text, i)
        if not km:
            # positional or garbage: skip to the next separator
            _, i = _read_bare(text, i)
            if i < len(text) and text[i] == ")":
                i += 1
                break
            continue
        key = km.group(1)
        i = km.end()
        if i < len(text) and text[i] in "'\"":
            value, i = _read_quoted(text, i)
        else:
            value, i = _read_bare(text, i)
        args[key] = value
    return name, args, i


def _split_calls(block: str) -> list[tuple[str, dict[str, str]]]:
    calls: list[tuple[str, dict[str, str]]] = []
    pos = 0
    while pos < len(block):
        if not block[pos:].strip():
            break
        parsed = _parse_call(block, pos)
        if parsed is None:
            bare = _BARE_NAME.match(block, pos)
            if bare and not calls:
                calls.append((bare.group(1), {}))
            break
        name, args, pos = parsed
        calls.append((name, args))
    return calls


def _extract_reasoning(head: str) -> tuple[str | None, str | None]:
    reflection = None
    rm = _REFLECTION_RE.search(head)
    if rm:
        reflection = rm.group(1).strip() or None
        head = head[: rm.start()] + head[rm.end():]
    thought = None
    tm = _THOUGHT_RE.search(head)
    if tm:
        thought = tm.group(1).strip()
    return thought, reflection


def parse_action_text(
    prediction: str,
    factor: Factor = 1000,
    screen_context: ScreenSize | None = None,
    scale_factor: float = 1.0,
) -> ParseResult:
    """Parse a raw completion into zero or more actions.

    Box arguments (``*_box``) are divided by ``factor`` (per axis for a pair) and
    clamped into [0, 1]. With ``screen_context`` the resolved pixel centers are added
    as ``start_coords`` / ``end_coords``. Unknown action names pass through unchanged.
    """
    text = (prediction or "").strip()
    marks = list(_ACTION_MARK.finditer(text))
    if not marks:
        return ParseResult()
    # the last line-leading marker; thoughts may mention "Action:" in passing
    mark = marks[-1]

    thought, reflection = _extract_reasoning(text[: marks[0].start()])
    result = ParseResult()
    for name, args in _split_calls(text[mark.end():]):
        inputs: dict[str, str] = {}
        for key, value in args.items():
            if key.endswith("box"):
                inputs[key] = normalize_box(value, factor)
            else:
                inputs[key] = value
        if screen_context is not None:
            for box_key, coords_key in (("start_box", "start_coords"), ("end_box", "end_coords")):
                if not inputs.get(box_key):
                    continue
                coords = parse_box_to_screen_coords(
                    inputs[box_key], screen_context.width, screen_context.height, scale_factor
                )
                if coords.is_resolved:
                    inputs[coords_key] = format_box([coords.x, coords.y])
        result.parsed.append(
            ParsedAction(action_type=name, action_inputs=inputs, thought=thought, reflection=reflection)
        )
    return result


def get_summary(prediction: str) -> str:
    """Condensed prediction text stored on ``gpt`` turns: reflection blocks removed."""
    return _REFLECTION_BLOCK_RE.sub("", prediction or "").strip()
