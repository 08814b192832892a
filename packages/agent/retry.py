from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_not_exception_type, stop_after_attempt, wait_exponential
from tenacity.stop import stop_base

from packages.contracts.cancellation import is_cancelled, sleep_cancellable
from packages.contracts.errors import RunCancelled

from .config import OnRetry, RetryPolicy

logger = logging.getLogger("agent.retry")

T = TypeVar("T")


class stop_when_cancelled(stop_base):
    """Stop retrying once the run's cancellation signal has fired."""

    def __init__(self, signal: asyncio.Event | None) -> None:
        self.signal = signal

    def __call__(self, retry_state: RetryCallState) -> bool:
        return is_cancelled(self.signal)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 0,
    on_retry: OnRetry | None = None,
    signal: asyncio.Event | None = None,
    backoff_seconds: float = 0.0,
    max_backoff_seconds: float = 5.0,
    no_retry: tuple[type[BaseException], ...] = (),
) -> T:
    """Call ``fn`` up to ``max_retries + 1`` times.

    ``RunCancelled`` and anything in ``no_retry`` propagate at once. A fired
    cancellation between attempts stops with ``RunCancelled`` instead of spending
    the remaining attempts.
    """

    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome is not None else None
        logger.info("retrying after error attempt=%s/%s error=%s", state.attempt_number, max_retries, exc)
        if on_retry is not None and exc is not None:
            on_retry(exc, state.attempt_number)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1) | stop_when_cancelled(signal),
        wait=wait_exponential(multiplier=backoff_seconds, max=max_backoff_seconds),
        retry=retry_if_not_exception_type((RunCancelled, *no_retry)),
        before_sleep=before_sleep,
        sleep=lambda seconds: sleep_cancellable(seconds, signal),
        reraise=True,
    )

    async def attempt() -> T:
        if is_cancelled(signal):
            raise RunCancelled("cancelled before attempt")
        return await fn()

    try:
        return await retrying(attempt)
    except (RunCancelled, *no_retry):
        raise
    except Exception as exc:
        if is_cancelled(signal):
            raise RunCancelled("cancelled during retry") from exc
        raise


async def retry_with_policy(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    signal: asyncio.Event | None = None,
    no_retry: tuple[type[BaseException], ...] = (),
) -> T:
    return await with_retry(
        fn,
        max_retries=policy.max_retries,
        on_retry=policy.on_retry,
        signal=signal,
        backoff_seconds=policy.backoff_seconds,
        max_backoff_seconds=policy.max_backoff_seconds,
        no_retry=no_retry,
    )
