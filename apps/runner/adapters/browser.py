from __future__ import annotations

import asyncio
import base64
import logging
import re

from packages.agent.surface import require_point, split_hotkey, split_type_content
from packages.contracts.errors import ScreenshotError
from packages.contracts.models import ExecuteParams, ScreenshotOutput
from packages.perception.html import html_to_text
from packages.perception.pipeline import ExtractionResult

logger = logging.getLogger("runner.browser")

SCROLL_PIXELS = 500
WAIT_SECONDS = 1.0

_PLAYWRIGHT_KEYS = {
    "ctrl": "Control",
    "cmd": "Meta",
    "alt": "Alt",
    "shift": "Shift",
    "enter": "Enter",
    "esc": "Escape",
    "tab": "Tab",
    "space": "Space",
    "backspace": "Backspace",
    "delete": "Delete",
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
    "pageup": "PageUp",
    "pagedown": "PageDown",
    "home": "Home",
    "end": "End",
}

_SCROLL_DELTAS = {
    "up": (0, -SCROLL_PIXELS),
    "down": (0, SCROLL_PIXELS),
    "left": (-SCROLL_PIXELS, 0),
    "right": (SCROLL_PIXELS, 0),
}


def to_playwright_combo(key_str: str | None) -> str:
    keys = split_hotkey(key_str)
    return "+".join(_PLAYWRIGHT_KEYS.get(k, k.upper() if re.fullmatch(r"f\d{1,2}", k) else k) for k in keys)


def normalize_url(url: str) -> str:
    url = url.strip()
    if url and "://" not in url:
        return f"https://{url}"
    return url


class BrowserSurface:
    """A Chromium page driven through Playwright; coordinates are CSS pixels."""

    def __init__(self, headless: bool = True, start_url: str | None = None, viewport: tuple[int, int] = (1280, 800)) -> None:
        self.headless = headless
        self.start_url = start_url
        self.viewport = viewport
        self._playwright = None
        self._browser = None
        self.page = None

    async def start(self) -> "BrowserSurface":
        try:
            from playwright.async_api import async_playwright
        except ImportError as exc:
            raise RuntimeError("playwright required for the browser surface") from exc
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)
        width, height = self.viewport
        self.page = await self._browser.new_page(viewport={"width": width, "height": height})
        if self.start_url:
            await self.page.goto(normalize_url(self.start_url))
        return self

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._browser = self._playwright = self.page = None

    async def __aenter__(self) -> "BrowserSurface":
        return await self.start()

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def screenshot(self) -> ScreenshotOutput:
        if self.page is None:
            raise ScreenshotError("browser surface is not started")
        raw = await self.page.screenshot(type="png")
        dpr = await self.page.evaluate("window.devicePixelRatio")
        size = self.page.viewport_size or {"width": self.viewport[0], "height": self.viewport[1]}
        return ScreenshotOutput(
            base64=base64.b64encode(raw).decode("ascii"),
            width=int(size["width"]),
            height=int(size["height"]),
            scale_factor=float(dpr or 1.0),
        )

    async def extract_page_content(self, screenshot: ScreenshotOutput) -> ExtractionResult:
        """Extractor that reads the live page rather than the screenshot pixels."""
        if self.page is None:
            raise RuntimeError("browser surface is not started")
        html = await self.page.content()
        text = await asyncio.to_thread(html_to_text, html)
        title = text.title or await self.page.title()
        return ExtractionResult(
            content=text.content,
            token_count=len(text.content.split()),
            title=title,
            url=self.page.url,
        )

    async def execute(self, params: ExecuteParams) -> None:
        page = self.page
        if page is None:
            raise RuntimeError("browser surface is not started")
        inputs = params.action_inputs
        match params.action_type:
            case "click" | "left_single" | "left_click":
                x, y = require_point(params, "start_box", 1.0)
                await page.mouse.click(x, y)
            case "left_double" | "double_click":
                x, y = require_point(params, "start_box", 1.0)
                await page.mouse.click(x, y, click_count=2)
            case "right_single" | "right_click":
                x, y = require_point(params, "start_box", 1.0)
                await page.mouse.click(x, y, button="right")
            case "hover" | "mouse_move":
                x, y = require_point(params, "start_box", 1.0)
                await page.mouse.move(x, y)
            case "drag" | "select" | "left_click_drag":
                sx, sy = require_point(params, "start_box", 1.0)
                ex, ey = require_point(params, "end_box", 1.0)
                await page.mouse.move(sx, sy)
                await page.mouse.down()
                await page.mouse.move(ex, ey, steps=10)
                await page.mouse.up()
            case "type":
                text, submit = split_type_content(inputs.get("content"))
                if text:
                    await page.keyboard.type(text)
                if submit:
                    await page.keyboard.press("Enter")
            case "hotkey":
                combo = to_playwright_combo(inputs.get("key") or inputs.get("hotkey"))
                if combo:
                    await page.keyboard.press(combo)
            case "scroll":
                if inputs.get("start_box"):
                    x, y = require_point(params, "start_box", 1.0)
                    await page.mouse.move(x, y)
                dx, dy = _SCROLL_DELTAS.get((inputs.get("direction") or "down").strip().lower(), (0, 0))
                await page.mouse.wheel(dx, dy)
            case "navigate":
                url = normalize_url(inputs.get("url") or inputs.get("content") or "")
                if not url:
                    logger.warning("navigate without url")
                    return
                await page.goto(url)
            case "wait":
                await asyncio.sleep(WAIT_SECONDS)
            case "finished" | "call_user" | "error_env":
                return
            case _:
                logger.warning("unsupported action=%s", params.action_type)
