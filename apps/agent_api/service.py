from __future__ import annotations

import asyncio
import logging
from typing import Callable

from fastapi import HTTPException

from apps.agent_api.run_store import RunRecord, RunStore
from packages.agent import AgentConfig, GUIAgent, RunAdapter
from packages.agent.surface import Surface
from packages.contracts.models import ErrorInfo, RunEvent, RunRequest, RunStatusResponse, SessionSnapshot

logger = logging.getLogger("agent_api.service")

SurfaceFactory = Callable[[], Surface]


class RunService:
    """Starts agent runs as background tasks; each run gets its own surface."""

    def __init__(
        self,
        model,
        surface_factory: SurfaceFactory,
        store: RunStore,
        base_config: AgentConfig | None = None,
    ) -> None:
        self.model = model
        self.surface_factory = surface_factory
        self.runs = store
        self.base_config = base_config or AgentConfig()

    def _config_for(self, req: RunRequest) -> AgentConfig:
        overrides = {
            "max_loop_count": req.max_loop_count,
            "max_snapshot_err_cnt": req.max_snapshot_err_cnt,
        }
        return self.base_config.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    async def start(self, req: RunRequest, wait: bool = False) -> RunStatusResponse:
        record = self.runs.create(req.instruction)
        log = RunAdapter(logger, {"run_id": record.run_id})

        def on_data(snapshot: SessionSnapshot) -> None:
            self.runs.record_snapshot(record.run_id, snapshot)

        def on_error(snapshot: SessionSnapshot, error: ErrorInfo) -> None:
            log.error("run error status=%s error=%s", snapshot.status.value, error.error)
            record.err_msg = error.error

        agent = GUIAgent(
            self.surface_factory(),
            self.model,
            config=self._config_for(req),
            on_data=on_data,
            on_error=on_error,
            signal=record.signal,
            run_id=record.run_id,
        )
        record.task = asyncio.create_task(self._drive(agent, record))
        log.info("run started wait=%s", wait)
        if wait:
            await record.task
        return record.to_response()

    async def _drive(self, agent: GUIAgent, record: RunRecord) -> None:
        try:
            await agent.run(record.instruction)
        except Exception as exc:
            # already reported through on_error; the task result is never read
            logger.warning("run %s ended with error: %s", record.run_id, exc)

    def _get(self, run_id: str) -> RunRecord:
        record = self.runs.get(run_id)
        if not record:
            raise HTTPException(status_code=404, detail="run not found")
        return record

    def status(self, run_id: str) -> RunStatusResponse:
        return self._get(run_id).to_response()

    def events(self, run_id: str, after: int = 0) -> list[RunEvent]:
        self._get(run_id)
        return self.runs.events_after(run_id, after)

    def abort(self, run_id: str) -> RunStatusResponse:
        record = self._get(run_id)
        record.signal.set()
        logger.info("abort requested run_id=%s", run_id)
        return record.to_response()
