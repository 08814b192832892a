from __future__ import annotations


class GUIAgentError(Exception):
    """Base class for errors raised by agent collaborators."""


class RunCancelled(GUIAgentError):
    """The run's cancellation signal fired."""


class ScreenshotError(GUIAgentError):
    """The surface could not capture a frame."""


class ModelInvocationError(GUIAgentError):
    """The model transport failed or returned an unusable body."""


class ActionExecutionError(GUIAgentError):
    def __init__(self, action_type: str, message: str) -> None:
        super().__init__(f"{action_type}: {message}")
        self.action_type = action_type


class MissingCoordinatesError(ActionExecutionError):
    def __init__(self, action_type: str) -> None:
        super().__init__(action_type, "missing coordinates")
