"""Waves: the execution tokens a trace carries through a weave.

A wave starts ``flowing`` and ends in exactly one absorbing status. Every
transition returns a new wave; waves are never edited in place.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from weaver.core.models import KnotId, new_id
from weaver.errors import IllegalTransitionError, WeaveStructuralError


class WaveStatus(str, Enum):
    FLOWING = "flowing"
    BLOCKED = "blocked"
    ARRIVED = "arrived"
    MERGED = "merged"


ALLOWED_TRANSITIONS: dict[WaveStatus, set[WaveStatus]] = {
    WaveStatus.FLOWING: {WaveStatus.BLOCKED, WaveStatus.ARRIVED, WaveStatus.MERGED},
    WaveStatus.BLOCKED: set(),
    WaveStatus.ARRIVED: set(),
    WaveStatus.MERGED: set(),
}


class Wave(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    payload: dict[str, Any] = Field(default_factory=dict)
    path: list[KnotId] = Field(default_factory=list)
    status: WaveStatus = WaveStatus.FLOWING

    @property
    def current_knot(self) -> KnotId | None:
        return self.path[-1] if self.path else None

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]


def transition(wave: Wave, to: WaveStatus) -> Wave:
    allowed = ALLOWED_TRANSITIONS.get(wave.status, set())
    if to not in allowed:
        raise IllegalTransitionError(
            f"Illegal wave transition: {wave.status.value} -> {to.value} (wave {wave.id})"
        )
    return wave.model_copy(update={"status": to})


def create_wave(payload: Mapping[str, Any] | None = None, start_knot: KnotId | None = None) -> Wave:
    return Wave(payload=dict(payload or {}), path=[start_knot] if start_knot else [])


def clone_wave(wave: Wave) -> Wave:
    """Copy a wave for a branch: new identity, copied payload and path."""

    return Wave(payload=copy.deepcopy(wave.payload), path=list(wave.path), status=wave.status)


def advance_wave(wave: Wave, knot_id: KnotId) -> Wave:
    if wave.status is not WaveStatus.FLOWING:
        raise IllegalTransitionError(
            f"Cannot advance wave {wave.id} in status {wave.status.value}"
        )
    return wave.model_copy(update={"path": [*wave.path, knot_id]})


def block_wave(wave: Wave) -> Wave:
    return transition(wave, WaveStatus.BLOCKED)


def arrive_wave(wave: Wave) -> Wave:
    return transition(wave, WaveStatus.ARRIVED)


def merge_waves(waves: Sequence[Wave]) -> Wave:
    """Combine several waves into one.

    Payloads are merged left to right (later keys win) and paths are
    concatenated. The trace engine never calls this; joins are explicit.
    """

    if not waves:
        raise WeaveStructuralError("merge: at least one wave is required", operation="merge")
    payload: dict[str, Any] = {}
    path: list[KnotId] = []
    for w in waves:
        payload.update(w.payload)
        path.extend(w.path)
    return Wave(payload=payload, path=path, status=WaveStatus.MERGED)
