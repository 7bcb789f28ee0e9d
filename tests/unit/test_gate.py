"""Unit tests for the gate expression language."""

from __future__ import annotations

import pytest

from weaver.runtime.gate import GateSyntaxError, compile_gate, evaluate_gate
from weaver.runtime.wave import create_wave


def test_comparison_against_wave_payload() -> None:
    assert evaluate_gate("steps > 10", create_wave({"steps": 20})) is True
    assert evaluate_gate("steps > 10", create_wave({"steps": 5})) is False


def test_bare_path_uses_truthiness() -> None:
    assert evaluate_gate("x", {"x": 0}) is False
    assert evaluate_gate("x", {"x": 3}) is True
    assert evaluate_gate("x", {"x": ""}) is False
    assert evaluate_gate("x", {"x": []}) is True
    assert evaluate_gate("x", {}) is False


def test_negation() -> None:
    assert evaluate_gate("!done", {"done": False}) is True
    assert evaluate_gate("!done", {"done": True}) is False
    assert evaluate_gate("!done", {}) is True


def test_conjunction_and_disjunction() -> None:
    assert evaluate_gate("a && b", {"a": True, "b": False}) is False
    assert evaluate_gate("a && b", {"a": True, "b": True}) is True
    assert evaluate_gate("a || b", {"a": False, "b": 1}) is True
    assert evaluate_gate("a || b", {}) is False


def test_and_binds_looser_than_or() -> None:
    payload = {"a": True, "b": False, "c": False}

    # (a || b) && c
    assert evaluate_gate("a || b && c", payload) is False
    assert evaluate_gate("c && a || b", {"a": True, "b": False, "c": True}) is True


def test_malformed_expressions_fail_closed() -> None:
    assert evaluate_gate("(((", {}) is False
    assert evaluate_gate("a ==", {"a": 1}) is False
    assert evaluate_gate("", {}) is False
    assert evaluate_gate("a b", {"a": 1}) is False


def test_dotted_paths_walk_mappings_and_lists() -> None:
    payload = {"user": {"age": 21, "tags": ["admin", "ops"]}}

    assert evaluate_gate("user.age >= 18", payload) is True
    assert evaluate_gate("user.tags.1 == ops", payload) is True
    assert evaluate_gate("user.tags.5 == ops", payload) is False
    assert evaluate_gate("user.missing.deeper", payload) is False


def test_loose_equality() -> None:
    assert evaluate_gate('count == "5"', {"count": 5}) is True
    assert evaluate_gate("flag == true", {"flag": True}) is True
    assert evaluate_gate("flag == 1", {"flag": True}) is True
    assert evaluate_gate("missing == null", {}) is True
    assert evaluate_gate("value != null", {"value": 0}) is True
    assert evaluate_gate("status == active", {"status": "active"}) is True
    assert evaluate_gate("status != active", {"status": "idle"}) is True


def test_ordering_with_non_numeric_values_is_false() -> None:
    assert evaluate_gate("name > 5", {"name": "bob"}) is False
    assert evaluate_gate("name < 5", {"name": "bob"}) is False
    assert evaluate_gate("missing <= 0", {}) is False
    assert evaluate_gate("count <= 1", {"count": "1"}) is True


def test_operators_inside_string_literals_are_safe() -> None:
    assert evaluate_gate('label == "a && b"', {"label": "a && b"}) is True
    assert evaluate_gate("label == 'x || y'", {"label": "nope"}) is False


def test_bare_words_with_punctuation_compare_as_strings() -> None:
    assert evaluate_gate("status == in-progress", {"status": "in-progress"}) is True
    assert evaluate_gate("version == 1.2.3", {"version": "1.2.3"}) is True


def test_unquoted_literal_runs_to_the_next_connective() -> None:
    assert evaluate_gate("name == hello world", {"name": "hello world"}) is True
    assert evaluate_gate("name == O'Brien", {"name": "O'Brien"}) is True
    assert evaluate_gate("name != hello world", {"name": "hello"}) is True

    payload = {"name": "hello world", "ok": False}
    assert evaluate_gate("name == hello world && ok", payload) is False
    assert evaluate_gate("name == hello world || ok", payload) is True
    assert evaluate_gate("count >= 10 ", {"count": 12}) is True


def test_compile_gate_raises_and_caches() -> None:
    with pytest.raises(GateSyntaxError):
        compile_gate("a ==")
    with pytest.raises(GateSyntaxError):
        compile_gate("&& a")

    assert compile_gate("x > 1") is compile_gate("x > 1")
