from __future__ import annotations

import json
from pathlib import Path

from .models import (
    ExecuteParams,
    ParsedAction,
    RunEvent,
    RunRequest,
    RunStatusResponse,
    ScreenshotOutput,
    SessionSnapshot,
)


def export_schemas(output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    schemas = {
        "parsed_action.schema.json": ParsedAction.model_json_schema(),
        "screenshot_output.schema.json": ScreenshotOutput.model_json_schema(),
        "execute_params.schema.json": ExecuteParams.model_json_schema(),
        "session_snapshot.schema.json": SessionSnapshot.model_json_schema(by_alias=True),
        "run_request.schema.json": RunRequest.model_json_schema(),
        "run_status_response.schema.json": RunStatusResponse.model_json_schema(),
        "run_event.schema.json": RunEvent.model_json_schema(by_alias=True),
    }
    written = []
    for name, schema in schemas.items():
        path = output_dir / name
        path.write_text(json.dumps(schema, indent=2), encoding="utf-8")
        written.append(path)
    return written


if __name__ == "__main__":
    export_schemas(Path(__file__).resolve().parent / "schemas")
