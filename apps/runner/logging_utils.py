from __future__ import annotations

import logging
import sys

from packages.agent.logging_utils import RunIdFilter

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s run_id=%(run_id)s message=%(message)s"


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    for handler in logging.getLogger().handlers:
        handler.addFilter(RunIdFilter())
    # third-party request logs are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
