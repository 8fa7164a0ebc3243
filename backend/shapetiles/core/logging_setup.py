"""Process-wide logging configuration.

Log records are written to stdout as one JSON object per line so that the
tile service's output can be collected by container log shippers as-is.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter.

    Produces ``{"t": 1712, "lvl": "INFO", "name": "mod", "msg": "text"}``
    and adds ``exc_info`` when the record carries an exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once with JSON formatting.

    Level precedence: explicit ``level`` argument, then the ``LOG_LEVEL``
    environment variable, then INFO. Unknown level names fall back to INFO.
    Repeated calls are no-ops.

    Args:
        level: Optional log level name such as "DEBUG" or "WARNING".
    """
    root = logging.getLogger()
    if getattr(root, "_shapetiles_configured", False):
        return

    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(level_name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.addHandler(handler)
    root.setLevel(resolved)
    root._shapetiles_configured = True  # type: ignore[attr-defined]
