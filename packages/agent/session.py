from __future__ import annotations

from typing import Callable

from packages.contracts.models import Conversation, SessionSnapshot, StatusEnum
from packages.contracts.utils import now_ms

OnData = Callable[[SessionSnapshot], None]


class AgentSession:
    """Runtime state of one run with an explicit change notifier.

    Only ``append_entry``, ``set_status``, ``set_err_msg`` and ``update`` mutate it.
    Every mutation that changes something notifies ``on_data`` synchronously:
    an append with a one-entry delta, a field change with an empty delta.
    """

    def __init__(
        self,
        instruction: str,
        system_prompt: str,
        model_name: str,
        on_data: OnData | None = None,
        initial_entries: list[Conversation] | None = None,
    ) -> None:
        self.version = "v1"
        self.instruction = instruction
        self.system_prompt = system_prompt
        self.model_name = model_name
        self.log_time = now_ms()
        self._status = StatusEnum.INIT
        self._err_msg: str | None = None
        self._conversations: list[Conversation] = list(initial_entries or [])
        self._on_data = on_data

    @property
    def status(self) -> StatusEnum:
        return self._status

    @property
    def err_msg(self) -> str | None:
        return self._err_msg

    @property
    def conversations(self) -> tuple[Conversation, ...]:
        return tuple(self._conversations)

    def snapshot(self, conversations: tuple[Conversation, ...] | None = None) -> SessionSnapshot:
        """Full state; ``conversations`` defaults to the whole history."""
        return SessionSnapshot(
            version=self.version,
            status=self._status,
            instruction=self.instruction,
            system_prompt=self.system_prompt,
            model_name=self.model_name,
            log_time=self.log_time,
            conversations=self.conversations if conversations is None else conversations,
            err_msg=self._err_msg,
        )

    def emit(self, conversations: tuple[Conversation, ...] = ()) -> None:
        if self._on_data is not None:
            self._on_data(self.snapshot(conversations))

    def append_entry(self, entry: Conversation) -> None:
        self._conversations.append(entry)
        self.emit((entry,))

    def set_status(self, status: StatusEnum) -> bool:
        if status == self._status:
            return False
        self._status = status
        self.emit()
        return True

    def set_err_msg(self, err_msg: str | None) -> bool:
        if err_msg == self._err_msg:
            return False
        self._err_msg = err_msg
        self.emit()
        return True

    def update(self, status: StatusEnum | None = None, err_msg: str | None = None) -> int:
        """Apply several field changes; one notification per field that changed."""
        changed = 0
        if err_msg is not None:
            changed += self.set_err_msg(err_msg)
        if status is not None:
            changed += self.set_status(status)
        return changed
