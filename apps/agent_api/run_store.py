from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

from packages.contracts.models import (
    ConversationView,
    RunEvent,
    RunStatusResponse,
    SessionSnapshot,
    StatusEnum,
)
from packages.contracts.utils import new_run_id


@dataclass(slots=True)
class RunRecord:
    run_id: str
    instruction: str
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    status: StatusEnum = StatusEnum.INIT
    err_msg: str | None = None
    turns: int = 0
    last_prediction: str | None = None
    events: list[RunEvent] = field(default_factory=list)
    signal: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task | None = None

    def to_response(self) -> RunStatusResponse:
        return RunStatusResponse(
            run_id=self.run_id,
            instruction=self.instruction,
            status=self.status,
            err_msg=self.err_msg,
            created_at=self.created_at,
            turns=self.turns,
            last_prediction=self.last_prediction,
        )


class RunStore:
    """In-memory runs and their observation streams."""

    def __init__(self) -> None:
        self._runs: dict[str, RunRecord] = {}

    def create(self, instruction: str) -> RunRecord:
        record = RunRecord(run_id=new_run_id(), instruction=instruction)
        self._runs[record.run_id] = record
        return record

    def get(self, run_id: str) -> RunRecord | None:
        return self._runs.get(run_id)

    def record_snapshot(self, run_id: str, snapshot: SessionSnapshot) -> RunEvent:
        record = self._runs[run_id]
        record.status = snapshot.status
        record.err_msg = snapshot.err_msg
        for conv in snapshot.conversations:
            record.turns += 1
            if conv.from_ == "gpt":
                record.last_prediction = conv.value
        event = RunEvent(
            seq=len(record.events) + 1,
            status=snapshot.status,
            err_msg=snapshot.err_msg,
            conversations=[ConversationView.from_conversation(c) for c in snapshot.conversations],
        )
        record.events.append(event)
        return event

    def events_after(self, run_id: str, after: int = 0) -> list[RunEvent]:
        return [e for e in self._runs[run_id].events if e.seq > after]
