from __future__ import annotations

import json
import logging
import sys

from weaver.logging import JsonFormatter, configure_logging


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord(
        "weaver.test", logging.INFO, __file__, 1, "hello %s", ("world",), None
    )
    record.steps = 3

    out = json.loads(JsonFormatter().format(record))

    assert out["message"] == "hello world"
    assert out["level"] == "INFO"
    assert out["logger"] == "weaver.test"
    assert out["extra"] == {"steps": 3}
    assert "exception" not in out


def test_json_formatter_renders_exceptions() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord(
            "weaver.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
        )

    out = json.loads(JsonFormatter().format(record))

    assert "ValueError: boom" in out["exception"]


def test_weave_context_is_lifted_and_defaults_are_stamped() -> None:
    record = logging.LogRecord(
        "weaver.service", logging.INFO, __file__, 1, "applied", (), None
    )
    record.weave_id = "w1"
    record.operation = "mark"
    record.version = 2

    out = json.loads(JsonFormatter({"service": "weaver"}).format(record))

    assert out["service"] == "weaver"
    assert out["weave_id"] == "w1"
    assert out["operation"] == "mark"
    assert out["extra"] == {"version": 2}


def test_configure_logging_writes_json_to_stderr(capsys) -> None:
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)
    try:
        configure_logging("info")
        logging.getLogger("weaver.test").info("ready", extra={"weave_id": "w9"})

        captured = capsys.readouterr()
        line = json.loads(captured.err.strip().splitlines()[-1])
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])

    assert captured.out == ""
    assert line["message"] == "ready"
    assert line["weave_id"] == "w9"
    assert line["service"] == "weaver"
