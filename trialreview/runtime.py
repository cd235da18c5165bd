"""Runtime utilities for logging."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

# attributes every LogRecord carries; anything else came in through ``extra=``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Context passed with ``extra=`` (``nct_id``, ``key``, ``human_grade``) is
    merged into the object; values JSON cannot encode are written as ``str()``.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in _extras(record).items():
            payload.setdefault(key, value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: int | str = logging.WARNING, json_output: bool = False) -> logging.Logger:
    """Install a single stream handler on the root logger.

    Repeated calls only adjust the level so that CLI invocations inside one
    process (tests, notebooks) do not stack handlers.
    """
    logger = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)
    if logger.handlers:
        return logger
    ch = logging.StreamHandler()
    if json_output:
        ch.setFormatter(JsonFormatter())
    else:
        ch.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(ch)
    return logger
