from __future__ import annotations

import json
from pathlib import Path

import pytest

from weaver import main as cli


@pytest.fixture(autouse=True)
def _env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WEAVER_GRAPHS_PATH", str(tmp_path / "graphs"))
    monkeypatch.delenv("WEAVER_MAX_STEPS", raising=False)
    # Keep pytest's log capture handlers in place.
    monkeypatch.setattr(cli, "configure_logging", lambda _level: None)


def _run(capsys, *argv: str) -> tuple[int, object]:
    code = cli.main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else None


def test_build_and_trace_a_weave(capsys) -> None:
    code, created = _run(capsys, "create", "Demo", "--id", "w1")
    assert code == 0
    assert created["id"] == "w1"

    for knot_id in ("a", "b", "c"):
        code, _ = _run(capsys, "mark", "w1", knot_id.upper(), "--id", knot_id)
        assert code == 0

    code, weave = _run(capsys, "branch", "w1", "a", "b", "c")
    assert code == 0
    assert len(weave["threads"]) == 2

    code, result = _run(capsys, "trace", "w1", "a", "--payload", '{"n": 1}')
    assert code == 0
    assert sorted(w["path"] for w in result["waves"]) == [["a", "b"], ["a", "c"]]

    code, listed = _run(capsys, "list")
    assert code == 0
    assert [w["id"] for w in listed] == ["w1"]

    code, validated = _run(capsys, "validate", "w1")
    assert code == 0
    assert validated["valid"] is True


def test_gate_command_sets_and_clears(capsys) -> None:
    _run(capsys, "create", "Demo", "--id", "w1")
    _run(capsys, "mark", "w1", "A", "--id", "a")
    _run(capsys, "mark", "w1", "B", "--id", "b")
    _run(capsys, "thread", "w1", "a", "b", "--id", "t")

    code, weave = _run(capsys, "gate", "w1", "t", "n > 1")
    assert code == 0
    assert weave["threads"]["t"]["gate"]["expression"] == "n > 1"

    code, weave = _run(capsys, "gate", "w1", "t")
    assert weave["threads"]["t"]["gate"] is None


def test_rejected_operation_exits_3(capsys) -> None:
    _run(capsys, "create", "Demo", "--id", "w1")

    code = cli.main(["thread", "w1", "a", "ghost"])
    captured = capsys.readouterr()

    assert code == 3
    assert captured.out == ""
    assert json.loads(captured.err.strip().splitlines()[-1])["operation"] == "thread"


def test_missing_weave_exits_3(capsys) -> None:
    assert cli.main(["show", "ghost"]) == 3


def test_configuration_error_exits_2(monkeypatch, capsys) -> None:
    monkeypatch.setenv("WEAVER_MAX_STEPS", "0")

    assert cli.main(["list"]) == 2
    assert "Configuration error" in capsys.readouterr().err
