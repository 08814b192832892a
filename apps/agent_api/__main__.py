from __future__ import annotations

import os

import uvicorn


def main() -> None:
    port = int(os.getenv("GUI_AGENT_API_PORT", "8001"))
    uvicorn.run("apps.agent_api.main:app", host="127.0.0.1", port=port, reload=False)


if __name__ == "__main__":
    main()
