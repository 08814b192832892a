from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from .errors import RunCancelled

T = TypeVar("T")


def is_cancelled(signal: asyncio.Event | None) -> bool:
    return signal is not None and signal.is_set()


async def run_cancellable(aw: Awaitable[T], signal: asyncio.Event | None) -> T:
    """Await ``aw`` unless ``signal`` fires first; then cancel it and raise RunCancelled."""
    if signal is None:
        return await aw
    if signal.is_set():
        if asyncio.iscoroutine(aw):
            aw.close()
        raise RunCancelled("cancelled before start")

    work = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        waiter.cancel()
    if work in done:
        return work.result()

    work.cancel()
    try:
        await work
    except asyncio.CancelledError:
        pass
    raise RunCancelled("cancelled while in flight")


async def sleep_cancellable(seconds: float, signal: asyncio.Event | None) -> None:
    if seconds <= 0:
        return
    if signal is None:
        await asyncio.sleep(seconds)
        return
    try:
        await asyncio.wait_for(signal.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return
