from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("agent.hooks")

HOOK_NAMES = ("on_screenshot", "on_operator_action")


class HookManager:
    """Calls optional async hook methods on registered observers, in registration order.

    A failing hook is logged and skipped; it never breaks the run.
    """

    def __init__(self, hooks: list[Any] | None = None) -> None:
        self._hooks: dict[str, Any] = {}
        for hook in hooks or []:
            self.register(hook)

    def register(self, hook: Any) -> None:
        self._hooks[getattr(hook, "name", type(hook).__name__)] = hook

    def get(self, name: str) -> Any | None:
        return self._hooks.get(name)

    async def init(self) -> None:
        await self._call_all("init")

    async def cleanup(self) -> None:
        await self._call_all("cleanup")

    async def call_hook(self, hook_name: str, *args: Any) -> None:
        if hook_name not in HOOK_NAMES:
            raise ValueError(f"unknown hook: {hook_name}")
        await self._call_all(hook_name, *args)

    async def _call_all(self, method: str, *args: Any) -> None:
        for name, hook in self._hooks.items():
            fn = getattr(hook, method, None)
            if fn is None:
                continue
            try:
                await fn(*args)
            except Exception:
                logger.exception("hook %s.%s failed", name, method)
