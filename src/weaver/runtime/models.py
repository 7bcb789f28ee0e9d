"""Records produced by a trace run."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from weaver.core.models import KnotId, ThreadId
from weaver.runtime.wave import Wave, WaveStatus

TraceErrorKind = Literal["missing_start", "overrun"]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class GateOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    passed: bool
    expression: str


class TraceStep(BaseModel):
    """One observation in a trace: a wave at a knot, optionally on a thread."""

    model_config = ConfigDict(frozen=True)

    knot_id: KnotId
    thread_id: ThreadId | None = None
    wave: Wave
    gate_result: GateOutcome | None = None
    timestamp: datetime = Field(default_factory=_utc_now)


class TraceError(BaseModel):
    """A problem recorded during a trace. Recorded, never raised."""

    model_config = ConfigDict(frozen=True)

    kind: TraceErrorKind
    knot_id: KnotId
    thread_id: ThreadId | None = None
    message: str


class TraceResult(BaseModel):
    steps: list[TraceStep] = Field(default_factory=list)
    waves: list[Wave] = Field(default_factory=list)
    errors: list[TraceError] = Field(default_factory=list)
    duration: float = Field(default=0.0, description="Wall-clock seconds")

    def with_status(self, status: WaveStatus) -> list[Wave]:
        return [w for w in self.waves if w.status is status]

    @property
    def arrived(self) -> list[Wave]:
        return self.with_status(WaveStatus.ARRIVED)

    @property
    def blocked(self) -> list[Wave]:
        return self.with_status(WaveStatus.BLOCKED)

    def to_json(self) -> dict[str, object]:
        return self.model_dump(mode="json")
