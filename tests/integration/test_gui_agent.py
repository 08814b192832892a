from __future__ import annotations

import asyncio
import re

import pytest

from packages.agent import AgentConfig, GUIAgent, HookManager, RetryConfig, RetryPolicy, use_config
from packages.contracts.errors import ScreenshotError
from packages.contracts.models import ErrorInfo, ExecuteParams, SessionSnapshot, StatusEnum
from tests.fixtures.fakes import DesktopDryRunSurface, FakeSurface, ScriptedModel
from tests.fixtures.sample_data import CLICK_PREDICTION, FINISHED_PREDICTION, SCROLL_PREDICTION


def _config(**kwargs) -> AgentConfig:
    kwargs.setdefault("snapshot_retry_delay", 0)
    return AgentConfig(**kwargs)


def _run(agent: GUIAgent, instruction: str = "open the settings page") -> SessionSnapshot:
    return asyncio.run(agent.run(instruction))


def test_loop_cap_stops_after_exact_iterations() -> None:
    surface = FakeSurface()
    model = ScriptedModel([CLICK_PREDICTION])
    result = _run(GUIAgent(surface, model, config=_config(max_loop_count=3)))
    assert result.status == StatusEnum.MAX_LOOP
    assert re.search(r"exceeds.*loops", result.err_msg or "", re.I)
    assert surface.screenshot_calls == 3
    assert model.calls == 3
    assert len(surface.executed) == 3


def test_screenshot_cap_never_calls_model() -> None:
    surface = FakeSurface(valid=False)
    model = ScriptedModel([CLICK_PREDICTION])
    result = _run(GUIAgent(surface, model, config=_config(max_snapshot_err_cnt=4)))
    assert result.status == StatusEnum.MAX_LOOP
    assert re.search(r"too many screenshot failures", result.err_msg or "", re.I)
    assert surface.screenshot_calls == 4
    assert model.calls == 0


def test_loop_cap_message_wins_when_both_caps_hit() -> None:
    surface = FakeSurface()
    model = ScriptedModel([CLICK_PREDICTION])
    result = _run(GUIAgent(surface, model, config=_config(max_loop_count=1, max_snapshot_err_cnt=1)))
    assert result.status == StatusEnum.MAX_LOOP
    assert result.err_msg == "Exceeds the maximum number of loops"


def test_invalid_screenshots_do_not_consume_loop_budget() -> None:
    surface = FakeSurface(screenshot_errors=[ScreenshotError("black frame")] * 2)
    model = ScriptedModel([CLICK_PREDICTION])
    config = _config(max_loop_count=2, retry=RetryConfig(screenshot=RetryPolicy(fatal=False)))
    result = _run(GUIAgent(surface, model, config=config))
    assert result.status == StatusEnum.MAX_LOOP
    assert surface.screenshot_calls == 4
    assert model.calls == 2


def test_finished_stops_dispatch_of_following_actions() -> None:
    surface = FakeSurface()
    model = ScriptedModel(["Thought: done\nAction: finished()\n\nclick(start_box='(10,10)')"])
    result = _run(GUIAgent(surface, model, config=_config()))
    assert result.status == StatusEnum.END
    assert [p.action_type for p in surface.executed] == ["finished"]
    assert model.calls == 1


@pytest.mark.parametrize("action", ["call_user()", "error_env()"])
def test_other_terminal_actions_end_the_run(action: str) -> None:
    surface = FakeSurface()
    model = ScriptedModel([f"Thought: stop\nAction: {action}"])
    result = _run(GUIAgent(surface, model, config=_config()))
    assert result.status == StatusEnum.END
    assert surface.screenshot_calls == 1


def test_max_loop_action_sets_max_loop_status() -> None:
    result = _run(GUIAgent(FakeSurface(), ScriptedModel(["Action: max_loop()"]), config=_config()))
    assert result.status == StatusEnum.MAX_LOOP


def test_wait_is_never_dispatched() -> None:
    surface = FakeSurface()
    model = ScriptedModel(["Thought: page is loading\nAction: wait()"])
    config = _config(max_loop_count=3, retry=RetryConfig(execute=RetryPolicy(max_retries=3)))
    result = _run(GUIAgent(surface, model, config=config))
    assert result.status == StatusEnum.MAX_LOOP
    assert surface.execute_calls == 0
    assert model.calls == 3


def test_cancellation_between_iterations_is_a_clean_end() -> None:
    errors: list[ErrorInfo] = []
    signal = asyncio.Event()
    surface = FakeSurface(on_execute=lambda params: signal.set())
    model = ScriptedModel([CLICK_PREDICTION])
    agent = GUIAgent(
        surface,
        model,
        config=_config(max_loop_count=10),
        on_error=lambda snap, err: errors.append(err),
        signal=signal,
    )
    result = _run(agent)
    assert result.status == StatusEnum.END
    assert result.err_msg is None
    assert surface.screenshot_calls == 1
    assert model.calls == 1
    assert errors == []


def test_cancellation_before_start_makes_no_calls() -> None:
    surface = FakeSurface()
    model = ScriptedModel([CLICK_PREDICTION])
    agent = GUIAgent(surface, model, config=_config())
    agent.abort()
    result = _run(agent)
    assert result.status == StatusEnum.END
    assert surface.screenshot_calls == 0
    assert model.calls == 0


def test_fatal_model_error_reports_once_and_reraises() -> None:
    events: list[SessionSnapshot] = []
    errors: list[tuple[SessionSnapshot, ErrorInfo]] = []
    surface = FakeSurface()
    model = ScriptedModel([CLICK_PREDICTION], errors=[RuntimeError("model down")])
    agent = GUIAgent(
        surface,
        model,
        config=_config(),
        on_data=events.append,
        on_error=lambda snap, err: errors.append((snap, err)),
    )
    with pytest.raises(RuntimeError, match="model down"):
        _run(agent)
    assert len(errors) == 1
    snap, err = errors[0]
    assert err.code == -1
    assert err.error == "model down"
    assert "RuntimeError" in err.stack
    assert snap.status == StatusEnum.END
    assert events[-1].status == StatusEnum.END


def test_model_retry_recovers() -> None:
    model = ScriptedModel([FINISHED_PREDICTION], errors=[RuntimeError("flaky")])
    config = _config(retry=RetryConfig(model=RetryPolicy(max_retries=1)))
    result = _run(GUIAgent(FakeSurface(), model, config=config))
    assert result.status == StatusEnum.END
    assert model.calls == 2


def test_non_fatal_execute_failure_skips_the_action() -> None:
    surface = FakeSurface(execute_errors=[RuntimeError("click failed")])
    model = ScriptedModel([CLICK_PREDICTION, FINISHED_PREDICTION])
    config = _config(retry=RetryConfig(execute=RetryPolicy(fatal=False)))
    result = _run(GUIAgent(surface, model, config=config))
    assert result.status == StatusEnum.END
    assert surface.execute_calls == 2
    assert [p.action_type for p in surface.executed] == ["finished"]


def test_missing_coordinates_fails_only_that_action() -> None:
    surface = DesktopDryRunSurface()
    model = ScriptedModel(["Action: click(start_box='')", FINISHED_PREDICTION])
    config = _config(retry=RetryConfig(execute=RetryPolicy(max_retries=3)))
    result = _run(GUIAgent(surface, model, config=config))
    assert result.status == StatusEnum.END
    assert surface.execute_calls == 2


def test_empty_prediction_is_skipped() -> None:
    surface = FakeSurface()
    model = ScriptedModel([""])
    events: list[SessionSnapshot] = []
    result = _run(GUIAgent(surface, model, config=_config(max_loop_count=2), on_data=events.append))
    assert result.status == StatusEnum.MAX_LOOP
    assert all(c.from_ == "human" for c in result.conversations)
    assert surface.execute_calls == 0


def test_observations_are_deltas_in_append_order() -> None:
    events: list[SessionSnapshot] = []
    surface = FakeSurface()
    model = ScriptedModel([SCROLL_PREDICTION, FINISHED_PREDICTION])
    result = _run(GUIAgent(surface, model, config=_config(), on_data=events.append))

    assert events[0].status == StatusEnum.RUNNING
    assert events[0].conversations == ()
    assert events[-1].status == StatusEnum.END
    assert events[-1].conversations == ()
    replayed = [c for e in events for c in e.conversations]
    # the opening instruction is part of the initial state, not a delta
    assert replayed == list(result.conversations[1:])
    assert [c.from_ for c in result.conversations] == ["human", "human", "gpt", "human", "gpt"]
    gpt = result.conversations[2]
    assert gpt.prediction_parsed is not None
    assert gpt.prediction_parsed[0].action_type == "scroll"
    assert result.conversations[1].screenshot_context is not None


def test_model_input_keeps_a_sliding_image_window() -> None:
    model = ScriptedModel([CLICK_PREDICTION])
    _run(GUIAgent(FakeSurface(), model, config=_config(max_loop_count=7, max_image_length=5)))
    assert len(model.params[0].images) == 1
    assert len(model.params[-1].images) == 5
    assert model.params[-1].conversations[0].content.endswith("open the settings page")


def test_hooks_observe_screenshots_and_actions() -> None:
    class Recorder:
        name = "recorder"

        def __init__(self) -> None:
            self.screens = 0
            self.actions: list[str] = []
            self.cleaned = False

        async def on_screenshot(self, screenshot) -> None:
            self.screens += 1

        async def on_operator_action(self, params: ExecuteParams) -> None:
            self.actions.append(params.action_type)

        async def cleanup(self) -> None:
            self.cleaned = True

    class Broken:
        name = "broken"

        async def on_screenshot(self, screenshot) -> None:
            raise ValueError("hook bug")

    recorder = Recorder()
    model = ScriptedModel([CLICK_PREDICTION, FINISHED_PREDICTION])
    result = _run(GUIAgent(FakeSurface(), model, config=_config(), hooks=HookManager([Broken(), recorder])))
    assert result.status == StatusEnum.END
    assert recorder.screens == 2
    assert recorder.actions == ["click", "finished"]
    assert recorder.cleaned is True


def test_collaborators_see_the_run_context() -> None:
    seen: list[str] = []

    class ContextSurface(FakeSurface):
        async def screenshot(self):
            seen.append(use_config().run_id)
            return await super().screenshot()

    agent = GUIAgent(ContextSurface(), ScriptedModel([FINISHED_PREDICTION]), config=_config(), run_id="run_ctx")
    _run(agent)
    assert seen == ["run_ctx"]
