from __future__ import annotations

import httpx

from packages.contracts.models import RunEvent, RunRequest, RunStatusResponse


class AgentApiClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout_seconds, transport=self._transport)

    def start_run(self, req: RunRequest, wait: bool = False) -> RunStatusResponse:
        # waiting runs the whole loop server-side
        timeout = None if wait else self.timeout_seconds
        with self._client() as client:
            resp = client.post(
                f"{self.base_url}/v1/runs",
                params={"wait": str(wait).lower()},
                json=req.model_dump(mode="json", exclude_none=True),
                timeout=timeout,
            )
            resp.raise_for_status()
            return RunStatusResponse.model_validate(resp.json())

    def get_run(self, run_id: str) -> RunStatusResponse:
        with self._client() as client:
            resp = client.get(f"{self.base_url}/v1/runs/{run_id}")
            resp.raise_for_status()
            return RunStatusResponse.model_validate(resp.json())

    def events(self, run_id: str, after: int = 0) -> list[RunEvent]:
        with self._client() as client:
            resp = client.get(f"{self.base_url}/v1/runs/{run_id}/events", params={"after": after})
            resp.raise_for_status()
            return [RunEvent.model_validate(item) for item in resp.json()]

    def abort(self, run_id: str) -> RunStatusResponse:
        with self._client() as client:
            resp = client.post(f"{self.base_url}/v1/runs/{run_id}/abort")
            resp.raise_for_status()
            return RunStatusResponse.model_validate(resp.json())
