from __future__ import annotations

from fastapi.testclient import TestClient

from apps.agent_api.main import create_app
from apps.agent_api.run_store import RunStore
from tests.fixtures.fakes import FakeSurface, ScriptedModel
from tests.fixtures.sample_data import CLICK_PREDICTION, FINISHED_PREDICTION


def _new_client(predictions: list[str]) -> TestClient:
    app = create_app(
        model=ScriptedModel(predictions),
        surface_factory=FakeSurface,
        store=RunStore(),
    )
    return TestClient(app)


def test_health() -> None:
    with _new_client([FINISHED_PREDICTION]) as client:
        assert client.get("/health").json() == {"status": "ok"}


def test_run_to_completion_and_read_events() -> None:
    with _new_client([CLICK_PREDICTION, FINISHED_PREDICTION]) as client:
        resp = client.post("/v1/runs", params={"wait": "true"}, json={"instruction": "open settings"})
        assert resp.status_code == 200
        run = resp.json()
        assert run["status"] == "end"
        assert run["turns"] == 4
        assert run["last_prediction"].startswith("Thought: The task is complete.")

        events = client.get(f"/v1/runs/{run['run_id']}/events").json()
        assert events[0]["seq"] == 1
        assert events[-1]["status"] == "end"
        turns = [c for e in events for c in e["conversations"]]
        assert [t["from"] for t in turns] == ["human", "gpt", "human", "gpt"]
        assert turns[0]["has_screenshot"] is True
        assert "screenshot_base64" not in turns[0]

        later = client.get(f"/v1/runs/{run['run_id']}/events", params={"after": len(events) - 1}).json()
        assert len(later) == 1


def test_request_overrides_loop_cap() -> None:
    with _new_client([CLICK_PREDICTION]) as client:
        run = client.post(
            "/v1/runs",
            params={"wait": "true"},
            json={"instruction": "keep clicking", "max_loop_count": 2},
        ).json()
        assert run["status"] == "max_loop"
        assert "loops" in run["err_msg"]

        status = client.get(f"/v1/runs/{run['run_id']}").json()
        assert status["status"] == "max_loop"


def test_abort_finished_run_is_harmless() -> None:
    with _new_client([FINISHED_PREDICTION]) as client:
        run = client.post("/v1/runs", params={"wait": "true"}, json={"instruction": "x"}).json()
        resp = client.post(f"/v1/runs/{run['run_id']}/abort")
        assert resp.status_code == 200
        assert resp.json()["status"] == "end"


def test_unknown_run_is_404_and_bad_body_is_422() -> None:
    with _new_client([FINISHED_PREDICTION]) as client:
        assert client.get("/v1/runs/missing").status_code == 404
        assert client.post("/v1/runs/missing/abort").status_code == 404
        assert client.post("/v1/runs", json={"instruction": ""}).status_code == 422
