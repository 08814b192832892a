from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

IMAGE_PLACEHOLDER = "<image>"


class StatusEnum(str, Enum):
    INIT = "init"
    RUNNING = "running"
    END = "end"
    MAX_LOOP = "max_loop"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({StatusEnum.END, StatusEnum.MAX_LOOP, StatusEnum.ERROR})


class ScreenSize(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int


class ScreenshotOutput(BaseModel):
    """A captured frame of the surface.

    ``width``/``height`` are logical pixels; ``scale_factor`` is physical / logical.
    """

    model_config = ConfigDict(frozen=True)

    base64: str = ""
    width: int = 0
    height: int = 0
    scale_factor: float = Field(default=1.0, gt=0)

    def is_valid(self) -> bool:
        return bool(self.base64) and self.width > 0 and self.height > 0


class ScreenshotContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: ScreenSize
    scale_factor: float = 1.0


class Timing(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    cost: int


class ParsedAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    action_type: str
    action_inputs: dict[str, str] = Field(default_factory=dict)
    thought: str | None = None
    reflection: str | None = None


class Conversation(BaseModel):
    """One turn of the run history. Frozen once built."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: Literal["human", "gpt"] = Field(alias="from")
    value: str
    timing: Timing
    screenshot_base64: str | None = None
    screenshot_context: ScreenshotContext | None = None
    prediction_parsed: tuple[ParsedAction, ...] | None = None


class ExecuteParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    prediction: str
    parsed_prediction: ParsedAction
    screen_width: int
    screen_height: int
    scale_factor: float = 1.0

    @property
    def action_type(self) -> str:
        return self.parsed_prediction.action_type

    @property
    def action_inputs(self) -> dict[str, str]:
        return self.parsed_prediction.action_inputs


class VlmMessage(BaseModel):
    """Role-tagged model turn. ``content == IMAGE_PLACEHOLDER`` marks an image slot."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class InvokeParams(BaseModel):
    conversations: list[VlmMessage]
    images: list[str] = Field(default_factory=list)
    screen_context: ScreenSize | None = None
    scale_factor: float = 1.0


class InvokeOutput(BaseModel):
    prediction: str = ""
    parsed_predictions: list[ParsedAction] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    """What observers see. ``conversations`` holds only the delta of one notification."""

    model_config = ConfigDict(frozen=True)

    version: str = "v1"
    status: StatusEnum
    instruction: str
    system_prompt: str
    model_name: str
    log_time: int
    conversations: tuple[Conversation, ...] = ()
    err_msg: str | None = None


class ErrorInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: int = -1
    error: str
    stack: str = ""


class RunRequest(BaseModel):
    instruction: str = Field(min_length=1, max_length=10_000)
    max_loop_count: int | None = Field(default=None, ge=1, le=1000)
    max_snapshot_err_cnt: int | None = Field(default=None, ge=1, le=1000)


class ConversationView(BaseModel):
    """A turn with the screenshot payload elided."""

    from_: Literal["human", "gpt"] = Field(alias="from")
    value: str
    timing: Timing
    has_screenshot: bool = False
    prediction_parsed: list[ParsedAction] | None = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_conversation(cls, conv: Conversation) -> "ConversationView":
        return cls(
            from_=conv.from_,
            value=conv.value,
            timing=conv.timing,
            has_screenshot=bool(conv.screenshot_base64),
            prediction_parsed=list(conv.prediction_parsed) if conv.prediction_parsed is not None else None,
        )


class RunEvent(BaseModel):
    seq: int = Field(ge=0)
    status: StatusEnum
    err_msg: str | None = None
    conversations: list[ConversationView] = Field(default_factory=list)


class RunStatusResponse(BaseModel):
    run_id: str
    instruction: str
    status: StatusEnum
    err_msg: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    turns: int = Field(default=0, ge=0)
    last_prediction: str | None = None
