"""Unit tests for copy-on-write mutation operations."""

from __future__ import annotations

import pytest

from weaver.core import operations as ops
from weaver.core.models import (
    CompositeKnot,
    GateCondition,
    KnotInput,
    Position,
    StrandInput,
    ThreadInput,
    ThresholdInput,
    create_weave,
)
from weaver.errors import WeaveReferenceError, WeaveStructuralError


def test_mark_returns_new_snapshot_and_leaves_input_untouched() -> None:
    before = create_weave("demo", id="w1")
    after = ops.mark(before, KnotInput(id="a", label="A", data={"k": 1}))

    assert before.knots == {}
    assert before.metadata.version == 1
    assert after.knots["a"].label == "A"
    assert after.knots["a"].data == {"k": 1}
    assert after.metadata.version == 2
    assert after.metadata.modified >= before.metadata.modified


def test_mark_generates_id_when_omitted() -> None:
    weave = ops.mark(create_weave("demo"), KnotInput(label="A"))

    (knot_id,) = weave.knots
    assert knot_id
    assert weave.knots[knot_id].id == knot_id


def test_mark_rejects_duplicate_id(make_weave) -> None:
    weave = make_weave(["a"])
    with pytest.raises(WeaveStructuralError):
        ops.mark(weave, KnotInput(id="a", label="again"))


def test_thread_with_missing_source_fails_and_leaves_weave_unmodified(make_weave) -> None:
    weave = make_weave(["b"])

    with pytest.raises(WeaveReferenceError) as exc:
        ops.thread(weave, "missing-source", "b")

    assert exc.value.missing_id == "missing-source"
    assert exc.value.operation == "thread"
    assert "missing-source" in str(exc.value)
    assert weave.threads == {}
    assert weave.metadata.version == 2


def test_thread_rejects_duplicate_thread_id(make_weave) -> None:
    weave = make_weave(["a", "b"], [("a", "b")])
    with pytest.raises(WeaveStructuralError):
        ops.thread(weave, "b", "a", ThreadInput(id="a-b"))


def test_branch_is_all_or_nothing(make_weave) -> None:
    weave = make_weave(["s", "a"])

    with pytest.raises(WeaveReferenceError) as exc:
        ops.branch(weave, "s", ["a", "zzz"])

    assert exc.value.missing_id == "zzz"
    assert weave.threads == {}


def test_branch_creates_one_thread_per_target_with_a_single_version_bump(make_weave) -> None:
    weave = make_weave(["s", "a", "b"])

    out = ops.branch(weave, "s", ["a", "b"], ThreadInput(id="t", label="fan"))

    assert list(out.threads) == ["t-1", "t-2"]
    assert [t.target for t in out.threads.values()] == ["a", "b"]
    assert all(t.source == "s" and t.label == "fan" for t in out.threads.values())
    assert out.metadata.version == weave.metadata.version + 1


def test_branch_and_join_require_endpoints(make_weave) -> None:
    weave = make_weave(["a"])
    with pytest.raises(WeaveStructuralError):
        ops.branch(weave, "a", [])
    with pytest.raises(WeaveStructuralError):
        ops.join(weave, [], "a")


def test_join_fans_in_to_one_target(make_weave) -> None:
    weave = make_weave(["a", "b", "t"])

    out = ops.join(weave, ["a", "b"], "t")

    assert sorted(t.source for t in out.threads.values()) == ["a", "b"]
    assert {t.target for t in out.threads.values()} == {"t"}


def test_span_and_knot_connect_like_thread(make_weave) -> None:
    weave = make_weave(["a", "b"], [("a", "b")])

    out = ops.knot(weave, "b", "a", ThreadInput(id="back"))
    out = ops.span(out, "a", "b", ThreadInput(id="bridge"))

    assert out.threads["back"].source == "b"
    assert out.threads["back"].target == "a"
    assert out.threads["bridge"].target == "b"


def test_gate_sets_and_removes_condition(make_weave) -> None:
    weave = make_weave(["a", "b"], [("a", "b")])

    gated = ops.gate(weave, "a-b", GateCondition(expression="x > 1", fallback="a"))
    assert gated.threads["a-b"].gate == GateCondition(expression="x > 1", fallback="a")
    assert weave.threads["a-b"].gate is None

    cleared = ops.gate(gated, "a-b", None)
    assert cleared.threads["a-b"].gate is None


def test_gate_on_missing_thread_is_a_reference_error(make_weave) -> None:
    with pytest.raises(WeaveReferenceError) as exc:
        ops.gate(make_weave(["a"]), "nope", None)
    assert exc.value.kind == "thread"


def test_snip_removes_only_that_thread(make_weave) -> None:
    weave = make_weave(["a", "b", "c"], [("a", "b"), ("b", "c")])

    out = ops.snip(weave, "a-b")

    assert list(out.threads) == ["b-c"]
    assert set(out.knots) == {"a", "b", "c"}
    with pytest.raises(WeaveReferenceError):
        ops.snip(out, "a-b")


def test_cut_removes_knot_threads_and_memberships(make_weave) -> None:
    weave = make_weave(["a", "b", "c"], [("a", "b"), ("b", "c"), ("a", "c")])
    weave = ops.group(weave, StrandInput(id="s1", label="S", knots=["a", "b"]))
    weave = ops.fence(weave, ThresholdInput(id="t1", label="T", boundary=["b", "c"]))

    out = ops.cut(weave, "b")

    assert "b" not in out.knots
    assert all("b" not in (t.source, t.target) for t in out.threads.values())
    assert list(out.threads) == ["a-c"]
    assert out.strands["s1"].knots == ["a"]
    assert out.thresholds[0].boundary == ["c"]
    # Input untouched.
    assert weave.strands["s1"].knots == ["a", "b"]


def test_veil_hides_subgraph_behind_composite(make_weave) -> None:
    weave = make_weave(["x", "a", "b", "y"], [("x", "a"), ("a", "b"), ("b", "y")])

    veiled = ops.veil(weave, ["a", "b"], composite_id="c")

    assert set(veiled.knots) == {"x", "y", "c"}
    composite = veiled.knots["c"]
    assert isinstance(composite, CompositeKnot)
    assert composite.is_composite
    assert composite.type == "veiled"
    assert composite.label == "Veiled (2 knots)"
    assert [k.id for k in composite.veiled.knots] == ["a", "b"]
    assert [t.id for t in composite.veiled.threads] == ["a-b"]
    assert composite.veiled.attachments == {"x-a": "a", "b-y": "b"}
    assert veiled.threads["x-a"].target == "c"
    assert veiled.threads["b-y"].source == "c"
    assert "a-b" not in veiled.threads


def test_veil_places_composite_at_centroid() -> None:
    weave = create_weave("demo")
    weave = ops.mark(weave, KnotInput(id="a", label="A", position=Position(x=0, y=0)))
    weave = ops.mark(weave, KnotInput(id="b", label="B", position=Position(x=10, y=20)))

    out = ops.veil(weave, ["a", "b"], composite_id="c")

    assert out.knots["c"].position == Position(x=5, y=10)


def test_veil_then_reveal_restores_original_knots_and_threads(make_weave) -> None:
    weave = make_weave(["x", "a", "b", "y"], [("x", "a"), ("a", "b"), ("b", "y")])

    restored = ops.reveal(ops.veil(weave, ["a", "b"], composite_id="c"), "c")

    assert set(restored.knots) == set(weave.knots)
    assert restored.knots == weave.knots
    assert restored.threads == weave.threads


def test_veil_rejects_empty_and_missing_knots(make_weave) -> None:
    weave = make_weave(["a"])
    with pytest.raises(WeaveStructuralError):
        ops.veil(weave, [])
    with pytest.raises(WeaveReferenceError):
        ops.veil(weave, ["a", "ghost"])


def test_reveal_rejects_non_composite_and_missing_knots(make_weave) -> None:
    weave = make_weave(["a"])
    with pytest.raises(WeaveStructuralError):
        ops.reveal(weave, "a")
    with pytest.raises(WeaveReferenceError):
        ops.reveal(weave, "ghost")


def test_reveal_rejects_threads_attached_after_veiling(make_weave) -> None:
    weave = make_weave(["a", "b", "z"], [("a", "b")])
    veiled = ops.veil(weave, ["a", "b"], composite_id="c")
    veiled = ops.thread(veiled, "z", "c", ThreadInput(id="late"))

    with pytest.raises(WeaveStructuralError):
        ops.reveal(veiled, "c")

    # Snipping the late thread makes the composite revealable again.
    restored = ops.reveal(ops.snip(veiled, "late"), "c")
    assert set(restored.knots) == {"a", "b", "z"}


def test_group_and_fence_validate_members(make_weave) -> None:
    weave = make_weave(["a", "b"])

    grouped = ops.group(weave, StrandInput(id="s", label="S", knots=["a", "b", "a"]))
    assert grouped.strands["s"].knots == ["a", "b"]

    fenced = ops.fence(
        grouped, ThresholdInput(id="t", label="T", boundary=["a"], permissions=["read"])
    )
    assert fenced.thresholds[0].permissions == ["read"]

    with pytest.raises(WeaveReferenceError):
        ops.group(weave, StrandInput(label="S", knots=["ghost"]))
    with pytest.raises(WeaveStructuralError):
        ops.fence(fenced, ThresholdInput(id="t", label="again"))
