from __future__ import annotations

import contextvars
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    DEFAULT_FACTOR,
    MAX_IMAGE_LENGTH,
    MAX_LOOP_COUNT,
    MAX_SNAPSHOT_ERR_CNT,
    SNAPSHOT_RETRY_DELAY,
    SYSTEM_PROMPT,
)
from .logging_utils import RunAdapter

logger = logging.getLogger("agent.config")

OnRetry = Callable[[BaseException, int], Any]


class RetryPolicy(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_retries: int = Field(default=0, ge=0, le=20)
    fatal: bool = True
    backoff_seconds: float = Field(default=0.0, ge=0)
    max_backoff_seconds: float = Field(default=5.0, ge=0)
    on_retry: OnRetry | None = Field(default=None, exclude=True)


class RetryConfig(BaseModel):
    screenshot: RetryPolicy = Field(default_factory=RetryPolicy)
    model: RetryPolicy = Field(default_factory=RetryPolicy)
    execute: RetryPolicy = Field(default_factory=RetryPolicy)


class AgentConfig(BaseModel):
    max_loop_count: int = Field(default=MAX_LOOP_COUNT, ge=1, le=1000)
    max_snapshot_err_cnt: int = Field(default=MAX_SNAPSHOT_ERR_CNT, ge=1, le=1000)
    snapshot_retry_delay: float = Field(default=SNAPSHOT_RETRY_DELAY, ge=0)
    max_image_length: int = Field(default=MAX_IMAGE_LENGTH, ge=1, le=50)
    system_prompt: str = SYSTEM_PROMPT
    retry: RetryConfig = Field(default_factory=RetryConfig)


class ModelSettings(BaseModel):
    base_url: str = ""
    api_key: str = ""
    model: str = "ui-tars"
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_tokens: int = Field(default=1000, ge=1)
    temperature: float = Field(default=0.0, ge=0, le=2)
    factor: float | tuple[float, float] = DEFAULT_FACTOR

    @classmethod
    def from_env(cls, prefix: str = "GUI_AGENT_VLM_") -> "ModelSettings":
        """Read ``<prefix>URL``, ``<prefix>API_KEY``, ``<prefix>MODEL`` and ``<prefix>TIMEOUT``."""
        return cls(
            base_url=os.getenv(f"{prefix}URL", "").strip(),
            api_key=os.getenv(f"{prefix}API_KEY", "").strip(),
            model=os.getenv(f"{prefix}MODEL", "ui-tars").strip() or "ui-tars",
            timeout_seconds=float(os.getenv(f"{prefix}TIMEOUT", "60")),
        )


@dataclass(slots=True)
class RunContext:
    """Configuration visible to every collaborator call made inside one run."""

    run_id: str
    config: AgentConfig = field(default_factory=AgentConfig)
    model_name: str = ""
    log: logging.LoggerAdapter = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.log is None:
            self.log = RunAdapter(logging.getLogger("agent.loop"), {"run_id": self.run_id})


DEFAULT_CONTEXT = RunContext(run_id="n/a")

_current: contextvars.ContextVar[RunContext | None] = contextvars.ContextVar("gui_agent_run_context", default=None)


@contextmanager
def initialize_with_config(ctx: RunContext) -> Iterator[RunContext]:
    """Make ``ctx`` the ambient run context for the enclosed call tree.

    Backed by a ContextVar, so asyncio tasks started inside inherit it and
    concurrently running sessions never see each other's context.
    """
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def use_config() -> RunContext:
    ctx = _current.get()
    if ctx is None:
        logger.debug("use_config called outside a run, returning default context")
        return DEFAULT_CONTEXT
    return ctx
