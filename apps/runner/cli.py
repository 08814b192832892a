from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal as signals

from apps.runner.adapters import BrowserSurface, DesktopSurface
from apps.runner.client import AgentApiClient
from apps.runner.logging_utils import configure_logging
from apps.runner.runner import RunOutcome, run_local
from packages.agent import AgentConfig, ModelSettings
from packages.agent.constants import BROWSER_SYSTEM_PROMPT
from packages.contracts.models import RunRequest
from packages.vlm import ModelClient, build_client, build_model, vlm_extractor

logger = logging.getLogger("runner.cli")


def _build_config(args: argparse.Namespace) -> AgentConfig:
    overrides = {
        "max_loop_count": args.max_loop_count,
        "max_snapshot_err_cnt": args.max_snapshot_err_cnt,
    }
    if args.surface == "browser":
        overrides["system_prompt"] = BROWSER_SYSTEM_PROMPT
    return AgentConfig(**{k: v for k, v in overrides.items() if v is not None})


def _summary_client(args: argparse.Namespace, settings: ModelSettings) -> ModelClient | None:
    if not args.summarize:
        return None
    summary_settings = ModelSettings.from_env(prefix="GUI_AGENT_SUMMARY_")
    return build_client(summary_settings if summary_settings.base_url else settings)


async def _run_local(args: argparse.Namespace) -> RunOutcome:
    if args.extractor == "page" and args.surface != "browser":
        raise SystemExit("--extractor page requires --surface browser")
    settings = ModelSettings.from_env()
    model = build_model(settings)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signals.SIGINT, stop.set)

    kwargs = dict(
        config=_build_config(args),
        signal=stop,
        trace_dir=args.trace_dir,
        save_screenshots=args.save_screenshots,
        extraction=args.extraction,
        summary_client=_summary_client(args, settings),
    )
    if args.extractor == "vlm":
        kwargs["extractor"] = vlm_extractor(build_client(settings))
    if args.surface == "browser":
        async with BrowserSurface(headless=args.headless, start_url=args.start_url) as surface:
            if args.extractor == "page":
                kwargs["extractor"] = surface.extract_page_content
            return await run_local(args.instruction, surface, model, **kwargs)
    surface = DesktopSurface(dry_run=args.dry_run, scale_factor=args.scale_factor)
    return await run_local(args.instruction, surface, model, **kwargs)


def _cmd_run(args: argparse.Namespace) -> None:
    outcome = asyncio.run(_run_local(args))
    print(json.dumps(outcome.to_dict(), indent=2))


def _cmd_submit(args: argparse.Namespace) -> None:
    client = AgentApiClient(args.api_url)
    req = RunRequest(
        instruction=args.instruction,
        max_loop_count=args.max_loop_count,
        max_snapshot_err_cnt=args.max_snapshot_err_cnt,
    )
    run = client.start_run(req, wait=args.wait)
    print(run.model_dump_json(indent=2))


def _cmd_status(args: argparse.Namespace) -> None:
    client = AgentApiClient(args.api_url)
    print(client.get_run(args.run_id).model_dump_json(indent=2))


def _cmd_events(args: argparse.Namespace) -> None:
    client = AgentApiClient(args.api_url)
    for event in client.events(args.run_id, after=args.after):
        print(event.model_dump_json(by_alias=True))


def _cmd_abort(args: argparse.Namespace) -> None:
    client = AgentApiClient(args.api_url)
    print(client.abort(args.run_id).model_dump_json(indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GUI agent runner")
    parser.add_argument("--api-url", default="http://localhost:8001")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run an instruction against a local surface")
    run.add_argument("--instruction", required=True)
    run.add_argument("--surface", choices=["desktop", "browser"], default="desktop")
    run.add_argument("--max-loop-count", type=int)
    run.add_argument("--max-snapshot-err-cnt", type=int)
    run.add_argument("--scale-factor", type=float, default=1.0)
    run.add_argument("--dry-run", action="store_true", default=True)
    run.add_argument("--no-dry-run", action="store_false", dest="dry_run")
    run.add_argument("--start-url")
    run.add_argument("--headless", action="store_true", default=True)
    run.add_argument("--headed", action="store_false", dest="headless")
    run.add_argument("--trace-dir")
    run.add_argument("--save-screenshots", action="store_true")
    run.add_argument("--no-extraction", action="store_false", dest="extraction")
    run.add_argument("--extractor", choices=["ocr", "vlm", "page"], default="ocr")
    run.add_argument("--summarize", action="store_true")
    run.set_defaults(func=_cmd_run)

    submit = sub.add_parser("submit", help="start a run on the agent API")
    submit.add_argument("--instruction", required=True)
    submit.add_argument("--max-loop-count", type=int)
    submit.add_argument("--max-snapshot-err-cnt", type=int)
    submit.add_argument("--wait", action="store_true")
    submit.set_defaults(func=_cmd_submit)

    status = sub.add_parser("status")
    status.add_argument("--run-id", required=True)
    status.set_defaults(func=_cmd_status)

    events = sub.add_parser("events")
    events.add_argument("--run-id", required=True)
    events.add_argument("--after", type=int, default=0)
    events.set_defaults(func=_cmd_events)

    abort = sub.add_parser("abort")
    abort.add_argument("--run-id", required=True)
    abort.set_defaults(func=_cmd_abort)

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
