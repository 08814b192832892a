"""Agent control loop and its supporting pieces."""

from .config import (
    AgentConfig,
    ModelSettings,
    RetryConfig,
    RetryPolicy,
    RunContext,
    initialize_with_config,
    use_config,
)
from .constants import LOOP_EXCEEDED_MSG, SNAPSHOT_FAILURES_MSG, SYSTEM_PROMPT
from .conversation import build_invoke_params, process_vlm_params, to_vlm_model_format
from .gui_agent import GUIAgent, status_for_action
from .hooks import HookManager
from .logging_utils import RunAdapter, RunIdFilter
from .retry import retry_with_policy, with_retry
from .session import AgentSession
from .surface import Surface, require_point, resolve_point, split_hotkey, split_type_content

__all__ = [
    "AgentConfig",
    "AgentSession",
    "GUIAgent",
    "HookManager",
    "LOOP_EXCEEDED_MSG",
    "ModelSettings",
    "RetryConfig",
    "RetryPolicy",
    "RunAdapter",
    "RunContext",
    "RunIdFilter",
    "SNAPSHOT_FAILURES_MSG",
    "SYSTEM_PROMPT",
    "Surface",
    "build_invoke_params",
    "initialize_with_config",
    "process_vlm_params",
    "require_point",
    "resolve_point",
    "retry_with_policy",
    "split_hotkey",
    "split_type_content",
    "status_for_action",
    "to_vlm_model_format",
    "use_config",
    "with_retry",
]
