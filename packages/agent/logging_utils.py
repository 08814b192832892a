from __future__ import annotations

import logging


class RunAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        kwargs.setdefault("extra", {})
        kwargs["extra"].setdefault("run_id", self.extra.get("run_id", "n/a"))
        return msg, kwargs


class RunIdFilter(logging.Filter):
    """Give records logged outside a run a ``run_id`` so the shared format applies."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = "n/a"
        return True
