from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone

from .models import Conversation, SessionSnapshot, Timing


def new_run_id() -> str:
    ts = datetime.now(tz=timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"run_{ts}_{uuid.uuid4().hex[:10]}"


def now_ms() -> int:
    return int(time.time() * 1000)


def timing_since(start: int) -> Timing:
    end = now_ms()
    return Timing(start=start, end=end, cost=end - start)


def elide_screenshots(snapshot: SessionSnapshot) -> SessionSnapshot:
    """Copy of ``snapshot`` with every screenshot payload replaced by a marker."""
    convs: list[Conversation] = []
    for conv in snapshot.conversations:
        if conv.screenshot_base64:
            conv = conv.model_copy(update={"screenshot_base64": "<screenshotBase64>"})
        convs.append(conv)
    return snapshot.model_copy(update={"conversations": tuple(convs)})
