"""Shared contracts for the agent loop, its collaborators and the run API."""

from .cancellation import is_cancelled, run_cancellable, sleep_cancellable
from .coordinates import ScreenCoords, format_box, parse_box_to_screen_coords
from .errors import (
    ActionExecutionError,
    GUIAgentError,
    MissingCoordinatesError,
    ModelInvocationError,
    RunCancelled,
    ScreenshotError,
)
from .models import (
    IMAGE_PLACEHOLDER,
    TERMINAL_STATUSES,
    Conversation,
    ErrorInfo,
    ExecuteParams,
    InvokeOutput,
    InvokeParams,
    ParsedAction,
    RunRequest,
    RunStatusResponse,
    ScreenshotContext,
    ScreenshotOutput,
    ScreenSize,
    SessionSnapshot,
    StatusEnum,
    Timing,
    VlmMessage,
)
from .utils import new_run_id, now_ms, timing_since

__all__ = [
    "ActionExecutionError",
    "Conversation",
    "ErrorInfo",
    "ExecuteParams",
    "GUIAgentError",
    "IMAGE_PLACEHOLDER",
    "InvokeOutput",
    "InvokeParams",
    "MissingCoordinatesError",
    "ModelInvocationError",
    "ParsedAction",
    "RunCancelled",
    "RunRequest",
    "RunStatusResponse",
    "ScreenCoords",
    "ScreenSize",
    "ScreenshotContext",
    "ScreenshotError",
    "ScreenshotOutput",
    "SessionSnapshot",
    "StatusEnum",
    "TERMINAL_STATUSES",
    "Timing",
    "VlmMessage",
    "format_box",
    "is_cancelled",
    "new_run_id",
    "now_ms",
    "parse_box_to_screen_coords",
    "run_cancellable",
    "sleep_cancellable",
    "timing_since",
]
