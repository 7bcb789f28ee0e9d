"""Unit tests for the structural validator."""

from __future__ import annotations

from weaver.core import operations as ops
from weaver.core.knot_types import KnotTypeDefinition, KnotTypeRegistry, PortDefinition
from weaver.core.models import Knot, KnotInput, Thread, Weave, create_weave
from weaver.core.validation import validate_weave


def test_empty_weave_is_valid_with_info() -> None:
    result = validate_weave(create_weave("empty"))

    assert result.valid
    assert [i.severity for i in result.issues] == ["info"]


def test_single_knot_is_not_reported_as_disconnected(make_weave) -> None:
    result = validate_weave(make_weave(["a"]))

    assert result.issues == []


def test_disconnected_knots_are_warnings(make_weave) -> None:
    result = validate_weave(make_weave(["a", "b", "c"], [("a", "b")]))

    assert result.valid
    assert [i.knot_id for i in result.warnings] == ["c"]


def test_dangling_thread_is_an_error() -> None:
    weave = Weave(
        id="w",
        name="broken",
        knots={"a": Knot(id="a", label="A")},
        threads={"t": Thread(id="t", source="a", target="ghost")},
    )

    result = validate_weave(weave)

    assert not result.valid
    assert len(result.errors) == 1
    assert result.errors[0].thread_id == "t"
    assert "ghost" in result.errors[0].message


def test_self_loop_is_a_warning(make_weave) -> None:
    result = validate_weave(make_weave(["a"], [("a", "a")]))

    assert result.valid
    assert [i.thread_id for i in result.warnings] == ["a-a"]


def test_cycles_are_one_aggregated_info(make_weave) -> None:
    weave = make_weave(["a", "b", "c", "d"], [("a", "b"), ("b", "a"), ("c", "d"), ("d", "c")])

    result = validate_weave(weave)

    assert result.valid
    assert len(result.infos) == 1
    assert "2 cycle(s)" in result.infos[0].message


def test_registered_types_warn_about_missing_inputs() -> None:
    registry = KnotTypeRegistry()
    registry.register(
        KnotTypeDefinition(
            type="sampler",
            label="Sampler",
            inputs=[
                PortDefinition(name="model", type="MODEL"),
                PortDefinition(name="latent", type="LATENT"),
            ],
        )
    )
    weave = create_weave("typed")
    weave = ops.mark(weave, KnotInput(id="m", label="Model"))
    weave = ops.mark(weave, KnotInput(id="s", label="Sampler", type="sampler"))
    weave = ops.thread(weave, "m", "s")

    result = validate_weave(weave, registry)

    assert result.valid
    assert len(result.warnings) == 1
    assert result.warnings[0].knot_id == "s"
    assert "1 input connection(s)" in result.warnings[0].message


def test_to_json_shape(make_weave) -> None:
    out = validate_weave(make_weave(["a", "b"])).to_json()

    assert out["valid"] is True
    assert isinstance(out["issues"], list)
    assert out["issues"][0]["severity"] == "warning"
