"""agentguard.logs: structured JSON logging with a per-scan correlation id.

Every record carries `scan_id` (empty outside a batch scan) and `agent_id`
(None unless the call site passes one through `extra=`), so the lines of
one scan, or of one identity, can be grepped out of a mixed stream.
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar

scan_id_var: ContextVar[str] = ContextVar("scan_id", default="")


def new_scan_id() -> str:
    return uuid.uuid4().hex[:8]


class ScanIdFilter(logging.Filter):
    def filter(self, record):
        record.scan_id = scan_id_var.get("")
        if not hasattr(record, "agent_id"):
            record.agent_id = None
        return True


def setup_structured_logging(level: str = "INFO") -> logging.Logger:
    """Configure JSON logs on the agentguard logger (idempotent)."""
    from pythonjsonlogger.json import JsonFormatter

    logger = logging.getLogger("agentguard")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(scan_id)s %(agent_id)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        ))
        handler.addFilter(ScanIdFilter())
        logger.addHandler(handler)

    return logger
