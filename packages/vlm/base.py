from __future__ import annotations

import asyncio
from typing import Any, Protocol

from packages.contracts.models import InvokeOutput, InvokeParams

ChatMessage = dict[str, Any]


class ModelClient(Protocol):
    """Transport that turns chat messages into the model's raw completion text."""

    async def complete(self, messages: list[ChatMessage]) -> str:
        ...


class ActionModel(Protocol):
    """What the control loop needs from a model: a name and ``invoke``."""

    @property
    def model_name(self) -> str:
        ...

    async def invoke(self, params: InvokeParams, signal: asyncio.Event | None = None) -> InvokeOutput:
        ...
