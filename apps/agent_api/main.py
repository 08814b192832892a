from __future__ import annotations

from fastapi import FastAPI, Query

from apps.agent_api.logging_utils import configure_logging
from apps.agent_api.run_store import RunStore
from apps.agent_api.service import RunService, SurfaceFactory
from apps.runner.adapters import DesktopSurface
from packages.agent import AgentConfig, ModelSettings
from packages.contracts.models import RunEvent, RunRequest, RunStatusResponse
from packages.vlm import build_model

configure_logging()


def create_app(
    model=None,
    surface_factory: SurfaceFactory | None = None,
    store: RunStore | None = None,
    base_config: AgentConfig | None = None,
) -> FastAPI:
    app = FastAPI(title="GUI Agent API", version="0.1.0")
    service = RunService(
        model=model or build_model(ModelSettings.from_env()),
        surface_factory=surface_factory or (lambda: DesktopSurface(dry_run=True)),
        store=store or RunStore(),
        base_config=base_config,
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/v1/runs", response_model=RunStatusResponse)
    async def start_run(req: RunRequest, wait: bool = Query(default=False)) -> RunStatusResponse:
        return await service.start(req, wait=wait)

    @app.get("/v1/runs/{run_id}", response_model=RunStatusResponse)
    def get_run(run_id: str) -> RunStatusResponse:
        return service.status(run_id)

    @app.get("/v1/runs/{run_id}/events", response_model=list[RunEvent])
    def run_events(run_id: str, after: int = Query(default=0, ge=0)) -> list[RunEvent]:
        return service.events(run_id, after)

    @app.post("/v1/runs/{run_id}/abort", response_model=RunStatusResponse)
    def abort_run(run_id: str) -> RunStatusResponse:
        return service.abort(run_id)

    return app


app = create_app()
