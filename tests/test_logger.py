"""Unit tests for structured logging."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import json
import logging

from logger import JSONFormatter


def make_record(msg="Generation error", extra=None, exc_info=None):
    record = logging.LogRecord(
        name="services.llm_client",
        level=logging.ERROR,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info
    )
    for key, value in (extra or {}).items():
        setattr(record, key, value)
    return record


def test_json_formatter_basic_fields():
    output = json.loads(JSONFormatter().format(make_record()))

    assert output["level"] == "ERROR"
    assert output["logger"] == "services.llm_client"
    assert output["message"] == "Generation error"
    assert output["timestamp"].endswith("Z")
    assert "pathname" not in output


def test_json_formatter_includes_extra_fields():
    record = make_record(extra={"error_code": "TIMEOUT_ERROR", "error_details": {"latency_ms": 12}})

    output = json.loads(JSONFormatter().format(record))

    assert output["error_code"] == "TIMEOUT_ERROR"
    assert output["error_details"] == {"latency_ms": 12}


def test_json_formatter_includes_exception():
    try:
        raise ValueError("bad chunk")
    except ValueError:
        record = make_record(exc_info=sys.exc_info())

    output = json.loads(JSONFormatter().format(record))

    assert "ValueError: bad chunk" in output["exception"]
