from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from apps.runner.trace import TraceRecorder
from packages.agent import AgentConfig, GUIAgent, HookManager
from packages.agent.session import OnData
from packages.agent.surface import Surface
from packages.contracts.errors import ModelInvocationError
from packages.contracts.models import ErrorInfo, SessionSnapshot, StatusEnum
from packages.perception import OperationStep, OperationStepRecorder, ocr_extractor
from packages.perception.pipeline import ExtractionQueue, Extractor
from packages.vlm import ModelClient, summarize_steps

logger = logging.getLogger("runner.local")


@dataclass(slots=True)
class RunOutcome:
    run_id: str
    status: StatusEnum
    err_msg: str | None
    turns: int
    steps: list[OperationStep] = field(default_factory=list)
    trace_path: Path | None = None
    summary: str | None = None

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "err_msg": self.err_msg,
            "turns": self.turns,
            "trace_path": str(self.trace_path) if self.trace_path else None,
            "summary": self.summary,
            "steps": [
                {
                    "index": s.index,
                    "thought": s.thought,
                    "actions": s.actions,
                    "extraction": s.extraction.content if s.extraction else None,
                }
                for s in self.steps
            ],
        }


def _log_error(snapshot: SessionSnapshot, error: ErrorInfo) -> None:
    logger.error("run failed status=%s error=%s", snapshot.status.value, error.error)


async def run_local(
    instruction: str,
    surface: Surface,
    model,
    config: AgentConfig | None = None,
    signal: asyncio.Event | None = None,
    trace_dir: str | Path | None = None,
    save_screenshots: bool = False,
    extraction: bool = True,
    extraction_concurrency: int = 100,
    on_data: OnData | None = None,
    extractor: Extractor | None = None,
    summary_client: ModelClient | None = None,
) -> RunOutcome:
    """Run one instruction against ``surface`` and join the deferred extractions.

    ``extractor`` replaces OCR for each step. With ``summary_client`` the collected
    steps are summarized once the run is over.
    """
    recorder = OperationStepRecorder(
        queue=ExtractionQueue(extraction_concurrency),
        extractor=(extractor or ocr_extractor) if extraction else None,
    )
    hooks = HookManager([recorder])
    trace = None
    if trace_dir is not None:
        trace = TraceRecorder(trace_dir, save_screenshots=save_screenshots)
        hooks.register(trace)

    def sink(snapshot: SessionSnapshot) -> None:
        if trace is not None:
            trace.on_data(snapshot)
        if on_data is not None:
            on_data(snapshot)

    agent = GUIAgent(surface, model, config=config, on_data=sink, on_error=_log_error, signal=signal, hooks=hooks)
    try:
        snapshot = await agent.run(instruction)
    finally:
        steps = await recorder.collect()

    summary = None
    if summary_client is not None and steps:
        try:
            summary = await summarize_steps(summary_client, instruction, steps)
        except ModelInvocationError as exc:
            logger.warning("step summary failed error=%s", exc)

    return RunOutcome(
        run_id=agent.run_id,
        status=snapshot.status,
        err_msg=snapshot.err_msg,
        turns=len(snapshot.conversations),
        steps=steps,
        trace_path=trace.path if trace is not None else None,
        summary=summary,
    )
