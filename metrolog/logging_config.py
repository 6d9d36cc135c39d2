"""Logging setup for the host process.

Text logs by default, one JSON object per line when requested. Existing
root handlers are left alone unless override=True.
"""
import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Optional

import config


def _utc_iso8601() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": _utc_iso8601(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-friendly logs with UTC timestamps."""
    converter = time.gmtime

    def __init__(self) -> None:
        super().__init__("%(asctime)sZ | %(levelname)s | %(name)s | %(message)s")


def setup_logging(
    level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    override: bool = False,
) -> None:
    level = (level or config.LOG_LEVEL).upper()
    json_logs = config.LOG_JSON if json_logs is None else json_logs

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_logs else TextFormatter())

    if override:
        for h in list(root.handlers):
            root.removeHandler(h)
        root.addHandler(handler)
    elif not root.handlers:
        root.addHandler(handler)

    # SQL echo goes through this logger
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if config.SQLALCHEMY_ECHO else logging.WARNING
    )
