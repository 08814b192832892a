from __future__ import annotations

import asyncio
import threading

import pytest

from packages.action_parser import parse_action_text
from packages.contracts.models import ExecuteParams
from packages.perception.html import html_to_text
from packages.perception.image_utils import decode_base64_image, strip_data_url
from packages.perception.ocr import OCRToken, tokens_to_text
from packages.perception.pipeline import ExtractionQueue, ExtractionResult, OperationStepRecorder, ocr_extractor
from tests.fixtures.fakes import valid_screenshot


def test_extraction_queue_bounds_concurrency() -> None:
    async def scenario() -> ExtractionQueue:
        queue = ExtractionQueue(concurrency=2)

        async def job(n: int) -> int:
            await asyncio.sleep(0.01)
            return n

        tasks = [queue.submit(job, n) for n in range(6)]
        results = await asyncio.gather(*tasks)
        assert results == list(range(6))
        return queue

    queue = asyncio.run(scenario())
    assert queue.peak == 2
    assert queue.active == 0


def test_extraction_queue_rejects_zero_concurrency() -> None:
    with pytest.raises(ValueError):
        ExtractionQueue(concurrency=0)


def test_recorder_builds_steps_with_thoughts_and_deferred_extraction() -> None:
    async def extractor(screenshot) -> ExtractionResult:
        await asyncio.sleep(0)
        return ExtractionResult(content=f"{screenshot.width}x{screenshot.height}", token_count=1)

    async def scenario():
        recorder = OperationStepRecorder(extractor=extractor)
        shot = valid_screenshot(800, 600)
        await recorder.on_screenshot(shot)
        action = parse_action_text("Thought: open the menu\nAction: click(start_box='(10,10)')").parsed[0]
        params = ExecuteParams(
            prediction="",
            parsed_prediction=action,
            screen_width=shot.width,
            screen_height=shot.height,
        )
        await recorder.on_operator_action(params)
        await recorder.on_screenshot(shot)
        return await recorder.collect()

    steps = asyncio.run(scenario())
    assert len(steps) == 2
    assert steps[0].thought == "open the menu"
    assert steps[0].actions == ["click"]
    assert steps[0].extraction is not None
    assert steps[0].extraction.content == "800x600"
    assert steps[1].thought is None


def test_failed_extraction_resolves_to_none() -> None:
    async def extractor(screenshot) -> ExtractionResult:
        raise RuntimeError("ocr crashed")

    async def scenario():
        recorder = OperationStepRecorder(extractor=extractor)
        await recorder.on_screenshot(valid_screenshot())
        return await recorder.collect()

    steps = asyncio.run(scenario())
    assert steps[0].extraction is None


def test_tokens_group_into_reading_order_lines() -> None:
    tokens = [
        OCRToken(text="world", bbox=(60, 0, 100, 10), confidence=0.9, line_key=(1, 1, 1)),
        OCRToken(text="hello", bbox=(0, 0, 50, 10), confidence=0.9, line_key=(1, 1, 1)),
        OCRToken(text="second", bbox=(0, 20, 50, 30), confidence=0.9, line_key=(1, 1, 2)),
    ]
    assert tokens_to_text(tokens) == "hello world\nsecond"


def test_data_url_prefix_is_stripped_before_decoding() -> None:
    shot = valid_screenshot(4, 3)
    assert strip_data_url(f"data:image/png;base64,{shot.base64}") == shot.base64
    assert strip_data_url(shot.base64) == shot.base64
    assert decode_base64_image(f"data:image/png;base64,{shot.base64}").size == decode_base64_image(shot.base64).size


def test_ocr_decodes_off_the_event_loop(monkeypatch) -> None:
    seen: list[int] = []

    def fake_decode(screenshot_base64: str):
        seen.append(threading.get_ident())
        return object()

    monkeypatch.setattr("packages.perception.pipeline.decode_base64_image", fake_decode)
    monkeypatch.setattr("packages.perception.pipeline.extract_ocr_tokens", lambda image: [])

    result = asyncio.run(ocr_extractor(valid_screenshot()))
    assert result == ExtractionResult(content="", token_count=0)
    assert seen and seen[0] != threading.get_ident()


def test_html_to_text_prefers_article_and_drops_noise() -> None:
    html = """
    <html><head><title> Weather | Demo </title><style>p {color: red}</style></head>
    <body>
      <nav>Home About</nav>
      <article>
        <h1>Today</h1>
        <script>track()</script>
        <p>Sunny   and 21C</p>
        <img src="sun.png">
        <h2>Tomorrow</h2>
        <p>Rain</p>
      </article>
    </body></html>
    """
    page = html_to_text(html)
    assert page.title == "Weather | Demo"
    assert page.content == "# Today\nSunny and 21C\n## Tomorrow\nRain"


def test_html_to_text_falls_back_to_body() -> None:
    page = html_to_text("<body><div>Only <b>body</b></div></body>")
    assert page.title == ""
    assert page.content == "Only\nbody"
