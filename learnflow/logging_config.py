# learnflow/logging_config.py
import json
import logging
import os
import sys
from datetime import datetime, UTC
from typing import Any, Dict, Optional

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# passed through from `extra=` on queue and cache log calls
EXTRA_FIELDS = ("event", "job_id", "job_type", "attempts", "status", "cache", "error")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, carrying the job and cache extras when set."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name)) for name in EXTRA_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(fmt: Optional[str] = None, level: Optional[str] = None) -> None:
    """
    Sends root logging to stdout. `fmt` is "plain" or "json" and `level` a
    level name; both default to the LOG_FORMAT and LOG_LEVEL environment
    variables.
    """
    fmt = (fmt or os.environ.get("LOG_FORMAT") or "plain").lower()
    level = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
