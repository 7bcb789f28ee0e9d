"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from weaver.core import operations as ops
from weaver.core.models import GateCondition, KnotInput, ThreadInput, Weave, create_weave
from weaver.service import WeaveService
from weaver.store import WeaveStore

# (source, target) or (source, target, gate expression)
ThreadSpec = tuple[str, str] | tuple[str, str, str]


@pytest.fixture
def make_weave() -> Callable[..., Weave]:
    """Build a weave from knot ids and thread specs.

    Knot labels are the upper-cased ids; thread ids are ``"{source}-{target}"``.
    """

    def _make(
        knots: Sequence[str], threads: Sequence[ThreadSpec] = (), *, weave_id: str = "w1"
    ) -> Weave:
        weave = create_weave("test", id=weave_id)
        for knot_id in knots:
            weave = ops.mark(weave, KnotInput(id=knot_id, label=knot_id.upper()))
        for entry in threads:
            source, target = entry[0], entry[1]
            gate = GateCondition(expression=entry[2]) if len(entry) == 3 else None
            weave = ops.thread(
                weave, source, target, ThreadInput(id=f"{source}-{target}", gate=gate)
            )
        return weave

    return _make


@pytest.fixture
def graphs_dir(tmp_path: Path) -> Path:
    """Provide a temporary graphs directory."""
    return tmp_path / "graphs"


@pytest.fixture
def store(graphs_dir: Path) -> WeaveStore:
    return WeaveStore(graphs_dir)


@pytest.fixture
def service(store: WeaveStore) -> WeaveService:
    return WeaveService(store=store, max_steps=100)
