from __future__ import annotations

import asyncio
import traceback
from typing import TYPE_CHECKING, Callable

from packages.action_parser import get_summary
from packages.contracts.cancellation import is_cancelled, run_cancellable, sleep_cancellable
from packages.contracts.errors import MissingCoordinatesError, RunCancelled
from packages.contracts.models import (
    IMAGE_PLACEHOLDER,
    TERMINAL_STATUSES,
    Conversation,
    ErrorInfo,
    ExecuteParams,
    InvokeOutput,
    InvokeParams,
    ParsedAction,
    ScreenshotContext,
    ScreenshotOutput,
    ScreenSize,
    SessionSnapshot,
    StatusEnum,
)
from packages.contracts.utils import new_run_id, now_ms, timing_since

from .config import AgentConfig, RunContext, initialize_with_config
from .constants import LOOP_EXCEEDED_MSG, SNAPSHOT_FAILURES_MSG
from .conversation import build_invoke_params
from .hooks import HookManager
from .retry import retry_with_policy
from .session import AgentSession, OnData
from .surface import Surface

if TYPE_CHECKING:
    from packages.vlm.base import ActionModel

OnError = Callable[[SessionSnapshot, ErrorInfo], None]

_ACTION_STATUS = {
    "error_env": StatusEnum.END,
    "call_user": StatusEnum.END,
    "finished": StatusEnum.END,
    "max_loop": StatusEnum.MAX_LOOP,
}


def status_for_action(action_type: str) -> StatusEnum:
    return _ACTION_STATUS.get(action_type, StatusEnum.RUNNING)


class GUIAgent:
    """Screenshot, ask the model, act; until a terminal action, a cap, or cancellation.

    One instance owns ``surface`` for the duration of ``run``. ``signal`` is the
    run's cancellation signal; ``abort()`` sets it.
    """

    def __init__(
        self,
        surface: Surface,
        model: ActionModel,
        config: AgentConfig | None = None,
        on_data: OnData | None = None,
        on_error: OnError | None = None,
        signal: asyncio.Event | None = None,
        hooks: HookManager | None = None,
        run_id: str | None = None,
    ) -> None:
        self.surface = surface
        self.model = model
        self.config = config or AgentConfig()
        self.on_data = on_data
        self.on_error = on_error
        self.signal = signal or asyncio.Event()
        self.hooks = hooks or HookManager()
        self.run_id = run_id or new_run_id()
        self.session: AgentSession | None = None

    def abort(self) -> None:
        self.signal.set()

    async def run(self, instruction: str) -> SessionSnapshot:
        ctx = RunContext(run_id=self.run_id, config=self.config, model_name=self.model.model_name)
        with initialize_with_config(ctx):
            return await self._run(instruction, ctx)

    async def _run(self, instruction: str, ctx: RunContext) -> SessionSnapshot:
        log = ctx.log
        config = ctx.config
        start = now_ms()
        session = AgentSession(
            instruction=instruction,
            system_prompt=config.system_prompt,
            model_name=ctx.model_name,
            on_data=self.on_data,
            initial_entries=[Conversation(from_="human", value=instruction, timing=timing_since(start))],
        )
        self.session = session

        loop_count = 0
        snapshot_err_cnt = 0
        log.info("run started instruction=%r", instruction)
        session.set_status(StatusEnum.RUNNING)
        try:
            await self.hooks.init()
            while True:
                if session.status != StatusEnum.RUNNING or is_cancelled(self.signal):
                    if is_cancelled(self.signal):
                        log.info("cancellation observed at loop=%s", loop_count)
                        session.set_status(StatusEnum.END)
                    break

                if loop_count >= config.max_loop_count or snapshot_err_cnt >= config.max_snapshot_err_cnt:
                    msg = LOOP_EXCEEDED_MSG if loop_count >= config.max_loop_count else SNAPSHOT_FAILURES_MSG
                    log.warning("%s loops=%s screenshot_failures=%s", msg, loop_count, snapshot_err_cnt)
                    session.update(status=StatusEnum.MAX_LOOP, err_msg=msg)
                    break

                loop_count += 1
                shot_start = now_ms()
                screenshot = await self._capture(ctx)
                if screenshot is None or not screenshot.is_valid():
                    loop_count -= 1
                    snapshot_err_cnt += 1
                    log.warning("invalid screenshot failures=%s/%s", snapshot_err_cnt, config.max_snapshot_err_cnt)
                    await sleep_cancellable(config.snapshot_retry_delay, self.signal)
                    continue

                screen_ctx = ScreenshotContext(
                    size=ScreenSize(width=screenshot.width, height=screenshot.height),
                    scale_factor=screenshot.scale_factor,
                )
                session.append_entry(
                    Conversation(
                        from_="human",
                        value=IMAGE_PLACEHOLDER,
                        timing=timing_since(shot_start),
                        screenshot_base64=screenshot.base64,
                        screenshot_context=screen_ctx,
                    )
                )
                await self.hooks.call_hook("on_screenshot", screenshot)

                model_start = now_ms()
                params = build_invoke_params(
                    session.conversations, config.system_prompt, screenshot, config.max_image_length
                )
                output = await self._invoke(params, ctx)
                prediction = output.prediction
                if not prediction:
                    log.warning("empty prediction at loop=%s", loop_count)
                    continue

                log.info("prediction=%r", prediction)
                log.debug("parsed=%s", [p.model_dump() for p in output.parsed_predictions])
                session.append_entry(
                    Conversation(
                        from_="gpt",
                        value=get_summary(prediction),
                        timing=timing_since(model_start),
                        screenshot_context=screen_ctx,
                        prediction_parsed=tuple(output.parsed_predictions),
                    )
                )

                for action in output.parsed_predictions:
                    await self._dispatch(action, prediction, screenshot, session, ctx)
                    if session.status in TERMINAL_STATUSES:
                        break
        except RunCancelled:
            log.info("run cancelled")
            session.set_status(StatusEnum.END)
        except Exception as exc:
            log.exception("run failed")
            message = str(exc) or type(exc).__name__
            session.update(status=StatusEnum.END, err_msg=message)
            if self.on_error is not None:
                self.on_error(session.snapshot(), ErrorInfo(code=-1, error=message, stack=traceback.format_exc()))
            raise
        finally:
            if session.status not in TERMINAL_STATUSES:
                session.set_status(StatusEnum.END)
            session.emit()
            await self.hooks.cleanup()
            log.info("run finished status=%s loops=%s", session.status.value, loop_count)

        return session.snapshot()

    async def _dispatch(
        self,
        action: ParsedAction,
        prediction: str,
        screenshot: ScreenshotOutput,
        session: AgentSession,
        ctx: RunContext,
    ) -> None:
        session.set_status(status_for_action(action.action_type))
        ctx.log.info("action type=%s inputs=%s", action.action_type, action.action_inputs)
        if action.action_type == "wait" or is_cancelled(self.signal):
            return

        params = ExecuteParams(
            prediction=prediction,
            parsed_prediction=action,
            screen_width=screenshot.width,
            screen_height=screenshot.height,
            scale_factor=screenshot.scale_factor,
        )
        await self.hooks.call_hook("on_operator_action", params)
        policy = ctx.config.retry.execute
        try:
            await retry_with_policy(
                lambda: run_cancellable(self.surface.execute(params), self.signal),
                policy,
                signal=self.signal,
                no_retry=(MissingCoordinatesError,),
            )
        except MissingCoordinatesError as exc:
            ctx.log.warning("action skipped: %s", exc)
        except RunCancelled:
            raise
        except Exception as exc:
            if policy.fatal:
                raise
            ctx.log.warning("action %s failed after retries, skipping: %s", action.action_type, exc)

    async def _capture(self, ctx: RunContext) -> ScreenshotOutput | None:
        policy = ctx.config.retry.screenshot
        try:
            return await retry_with_policy(
                lambda: run_cancellable(self.surface.screenshot(), self.signal), policy, signal=self.signal
            )
        except RunCancelled:
            raise
        except Exception as exc:
            if policy.fatal:
                raise
            ctx.log.warning("screenshot failed after retries: %s", exc)
            return None

    async def _invoke(self, params: InvokeParams, ctx: RunContext) -> InvokeOutput:
        policy = ctx.config.retry.model
        try:
            return await retry_with_policy(lambda: self.model.invoke(params, self.signal), policy, signal=self.signal)
        except RunCancelled:
            raise
        except Exception as exc:
            if policy.fatal:
                raise
            ctx.log.warning("model call failed after retries: %s", exc)
            return InvokeOutput()
