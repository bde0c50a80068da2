import json
import logging
import os
import re
from datetime import datetime, timedelta, timezone

import pytest

from grpc_pubsub.logger import JsonFormatter, StructuredLogger, new_logger


def _read_entries(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class _CollectingHandler(logging.Handler):
    def __init__(self, formatter):
        super().__init__()
        self.setFormatter(formatter)
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


def test_info_writes_json_line_with_fields(tmp_path):
    out = tmp_path / "log.json"
    log = new_logger("grpc-pubsub:broker", str(out))
    log.info("publish request received", topic="group:chat")

    [entry] = _read_entries(out)
    assert entry["msg"] == "publish request received"
    assert entry["topic"] == "group:chat"
    assert entry["service"] == "grpc-pubsub:broker"
    assert entry["pid"] == os.getpid()
    assert entry["level"] == "info"


def test_entry_key_order_and_caller(tmp_path):
    out = tmp_path / "log.json"
    log = new_logger("svc", str(out))
    log.info("hello")

    raw = out.read_text(encoding="utf-8").splitlines()[0]
    entry = json.loads(raw)
    assert list(entry)[:4] == ["level", "timestamp", "caller", "msg"]
    assert entry["caller"].startswith("test_logger.py:")


def test_timestamp_is_iso8601(tmp_path):
    out = tmp_path / "log.json"
    new_logger("svc", str(out)).info("tick")
    [entry] = _read_entries(out)
    timestamp = entry["timestamp"]
    pattern = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}(Z|[+-]\d{4})$"
    assert bool(re.match(pattern, timestamp)) is True

    parsed = datetime.strptime(timestamp, "%Y-%m-%dT%H:%M:%S.%f%z")
    assert abs(parsed - datetime.now(timezone.utc)) < timedelta(minutes=5)


def test_multiple_outputs_receive_same_entry(tmp_path):
    first = tmp_path / "a.json"
    second = tmp_path / "b.json"
    new_logger("svc", str(first), str(second)).info("both", n=1)
    assert _read_entries(first) == _read_entries(second)


def test_default_output_is_stderr(capsys):
    new_logger("svc").info("to stderr", key="value")
    captured = capsys.readouterr()
    entry = json.loads(captured.err.strip())
    assert entry["key"] == "value"
    assert captured.out == ""


def test_fatal_logs_and_exits(tmp_path):
    out = tmp_path / "log.json"
    log = new_logger("svc", str(out))
    with pytest.raises(SystemExit) as info:
        log.fatal("create consumer error", error="boom")
    assert info.value.code == 1

    [entry] = _read_entries(out)
    assert entry["level"] == "fatal"
    assert entry["error"] == "boom"
    assert "stacktrace" in entry


def test_formatter_level_names():
    formatter = JsonFormatter({"service": "svc"})
    record = logging.LogRecord("n", logging.WARNING, __file__, 10, "careful", None, None)
    entry = json.loads(formatter.format(record))
    assert entry["level"] == "warn"
    assert entry["caller"] == "test_logger.py:10"
    assert entry["service"] == "svc"


def test_structured_logger_wraps_existing_logger():
    base = logging.Logger("custom", logging.INFO)
    handler = _CollectingHandler(JsonFormatter())
    base.addHandler(handler)

    StructuredLogger(base).info("wrapped", count=3)

    entries = [json.loads(line) for line in handler.lines]
    assert [entry["count"] for entry in entries] == [3]
    assert [entry["msg"] for entry in entries] == ["wrapped"]
    assert [entry["level"] for entry in entries] == ["info"]