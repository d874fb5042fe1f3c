"""
Logging setup.

Text output by default. LOG_FORMAT=json switches the root handler to one JSON
object per line carrying the request id, the generation id (when the request
addresses one) and any duration attached by the caller.
"""

import json
import logging
from datetime import datetime, timezone

from govgen.middleware.request_context import get_generation_id, get_request_id

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            # The access line is emitted after the ContextVars are reset,
            # so it passes its ids explicitly.
            "request_id": getattr(record, "request_id", None) or get_request_id(),
        }
        generation_id = getattr(record, "generation_id", None) or get_generation_id()
        if generation_id is not None:
            entry["generation_id"] = generation_id
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = record.duration_ms
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """Install a single root handler in the requested format."""
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if log_format == "json" else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # httpx logs every completion request at INFO; keep those at WARNING.
    logging.getLogger("httpx").setLevel(logging.WARNING)
