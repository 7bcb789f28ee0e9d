"""Unit tests for the Spindle and Braid schedulers."""

from __future__ import annotations

from weaver.runtime.braid import Braid, BraidEntry
from weaver.runtime.observers import NullObserver
from weaver.runtime.spindle import Spindle
from weaver.runtime.trace import TraceOptions, trace
from weaver.runtime.wave import Wave


class EnterCounter(NullObserver):
    def __init__(self) -> None:
        self.entered: list[str] = []

    def on_enter_knot(self, knot_id: str, wave: Wave) -> None:
        self.entered.append(knot_id)


def test_spindle_run_matches_trace(make_weave) -> None:
    weave = make_weave(["a", "b", "c"], [("a", "b"), ("b", "c")])

    result = Spindle(weave).run("a", {"n": 1})
    expected = trace(weave, "a", {"n": 1})

    assert [s.knot_id for s in result.steps] == [s.knot_id for s in expected.steps]
    assert [w.path for w in result.waves] == [w.path for w in expected.waves]


def test_spindle_steps_are_produced_incrementally(make_weave) -> None:
    weave = make_weave(["a", "b", "c"], [("a", "b"), ("b", "c")])
    counter = EnterCounter()
    steps = Spindle(weave, TraceOptions(observer=counter)).steps("a")

    first = next(steps)

    assert first.knot_id == "a"
    assert counter.entered == ["a"]

    rest = []
    try:
        while True:
            rest.append(next(steps))
    except StopIteration as stop:
        result = stop.value

    assert counter.entered == ["a", "b", "c"]
    assert [s.knot_id for s in [first, *rest]] == ["a", "b", "c"]
    assert len(result.steps) == 3
    assert [w.path for w in result.arrived] == [["a", "b", "c"]]


def test_spindle_steps_for_missing_start_yield_nothing(make_weave) -> None:
    steps = list(Spindle(make_weave(["a"])).steps("nope"))

    assert steps == []


def test_braid_returns_results_in_entry_order(make_weave) -> None:
    weave = make_weave(
        ["a", "b", "c", "sink"], [("a", "sink"), ("b", "sink"), ("c", "sink")]
    )
    entries = [
        BraidEntry(start_knot="c", payload={"i": 0}),
        BraidEntry(start_knot="a", payload={"i": 1}),
        BraidEntry(start_knot="missing"),
        BraidEntry(start_knot="b", payload={"i": 3}),
    ]

    results = Braid(weave, max_workers=4).run(entries)

    assert len(results) == 4
    assert [r.steps[0].knot_id for r in results if r.steps] == ["c", "a", "b"]
    assert [e.kind for e in results[2].errors] == ["missing_start"]
    assert results[3].arrived[0].payload == {"i": 3}
    assert results[0].arrived[0].path == ["c", "sink"]


def test_braid_with_no_entries(make_weave) -> None:
    assert Braid(make_weave(["a"])).run([]) == []


def test_run_braided_fans_out_inside_one_trace(make_weave) -> None:
    weave = make_weave(["mid", "a", "b"], [("mid", "a"), ("mid", "b")])

    result = Braid(weave).run_braided("mid", {"x": 1})

    assert len(result.arrived) == 2
    assert all(w.payload == {"x": 1} for w in result.arrived)
