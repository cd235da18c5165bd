from __future__ import annotations

import json
import logging
import sys

from trialreview.runtime import JsonFormatter


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord("trialreview.storage", logging.WARNING, __file__, 10, "write failed for %s", ("reviewDrafts",), None)
    record.key = "reviewDrafts"
    record.payload = object()

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["msg"] == "write failed for reviewDrafts"
    assert payload["logger"] == "trialreview.storage"
    assert payload["key"] == "reviewDrafts"
    assert payload["payload"].startswith("<object")


def test_json_formatter_keeps_core_fields_and_exceptions() -> None:
    try:
        raise OSError("disk full")
    except OSError:
        record = logging.LogRecord("trialreview.reviews", logging.ERROR, __file__, 20, "save failed", (), sys.exc_info())
    record.level = "shadowed"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "ERROR"
    assert payload["ts"].endswith("+00:00")
    assert "OSError: disk full" in payload["exc_info"]
