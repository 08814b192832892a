from __future__ import annotations

import logging
import sys

from packages.agent.logging_utils import RunIdFilter


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s run_id=%(run_id)s message=%(message)s",
        stream=sys.stdout,
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RunIdFilter())
