"""Graph model: knots, threads, groupings, boundaries and the Weave snapshot.

Every entity is a frozen pydantic model addressed by an opaque string id.
Entities never hold references to each other, only ids, so a snapshot can be
copied shallowly and compared by value. Mutation happens exclusively in
:mod:`weaver.core.operations`, which builds new snapshots.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

KnotId = str
ThreadId = str
StrandId = str

DEFAULT_KNOT_TYPE = "default"
VEILED_KNOT_TYPE = "veiled"


def new_id() -> str:
    """Generate an id that is unique within any snapshot."""

    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Position(_Frozen):
    """Layout position in canvas space. Never read by the trace engine."""

    x: float = 0.0
    y: float = 0.0


class GateCondition(_Frozen):
    """Admission condition attached to a thread.

    ``fallback`` names an alternate knot for blocked waves. It is stored and
    round-tripped but the trace engine does not route to it.
    """

    expression: str
    fallback: KnotId | None = None


class _KnotBase(_Frozen):
    id: KnotId
    label: str
    type: str = DEFAULT_KNOT_TYPE
    position: Position = Field(default_factory=Position)
    data: dict[str, Any] = Field(default_factory=dict)
    strand: StrandId | None = None


class Knot(_KnotBase):
    """A plain graph node."""

    kind: Literal["simple"] = "simple"

    @property
    def is_composite(self) -> bool:
        return False


class Thread(_Frozen):
    """A directed edge. A thread without a gate is always passable."""

    id: ThreadId
    source: KnotId
    target: KnotId
    label: str | None = None
    gate: GateCondition | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class VeiledSubgraph(_Frozen):
    """The subgraph hidden behind a composite knot.

    ``attachments`` maps every thread that crossed the veiled boundary at veil
    time to the original knot it touched, so ``reveal`` can reconnect it
    exactly.
    """

    knots: list[AnyKnot] = Field(default_factory=list)
    threads: list[Thread] = Field(default_factory=list)
    attachments: dict[ThreadId, KnotId] = Field(default_factory=dict)


class CompositeKnot(_KnotBase):
    """A knot produced by ``veil`` that embeds the subgraph it replaces."""

    kind: Literal["composite"] = "composite"
    type: str = VEILED_KNOT_TYPE
    veiled: VeiledSubgraph

    @property
    def is_composite(self) -> bool:
        return True


AnyKnot = Annotated[Knot | CompositeKnot, Field(discriminator="kind")]

VeiledSubgraph.model_rebuild()
CompositeKnot.model_rebuild()


class Strand(_Frozen):
    """A named, ordered grouping of knots. No execution semantics."""

    id: StrandId
    label: str
    knots: list[KnotId] = Field(default_factory=list)


class Threshold(_Frozen):
    """A named boundary over a set of knots plus a permission list (metadata only)."""

    id: str
    label: str
    boundary: list[KnotId] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)


class WeaveMetadata(_Frozen):
    created: datetime = Field(default_factory=_utc_now)
    modified: datetime = Field(default_factory=_utc_now)
    # Advisory only; nothing enforces optimistic concurrency on it.
    version: int = Field(default=1, ge=1)
    description: str | None = None


class Weave(_Frozen):
    """A complete, immutable graph snapshot."""

    id: str
    name: str
    knots: dict[KnotId, AnyKnot] = Field(default_factory=dict)
    threads: dict[ThreadId, Thread] = Field(default_factory=dict)
    strands: dict[StrandId, Strand] = Field(default_factory=dict)
    thresholds: list[Threshold] = Field(default_factory=list)
    metadata: WeaveMetadata = Field(default_factory=WeaveMetadata)


class KnotInput(BaseModel):
    """Input for ``mark``. The id is generated when omitted."""

    id: KnotId | None = None
    label: str
    type: str = DEFAULT_KNOT_TYPE
    position: Position = Field(default_factory=Position)
    data: dict[str, Any] = Field(default_factory=dict)
    strand: StrandId | None = None


class ThreadInput(BaseModel):
    """Input for ``thread`` and its aliases. The id is generated when omitted."""

    id: ThreadId | None = None
    label: str | None = None
    gate: GateCondition | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class StrandInput(BaseModel):
    id: StrandId | None = None
    label: str
    knots: list[KnotId] = Field(default_factory=list)


class ThresholdInput(BaseModel):
    id: str | None = None
    label: str
    boundary: list[KnotId] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)


def create_weave(name: str, id: str | None = None, description: str | None = None) -> Weave:
    """Create an empty weave at version 1."""

    now = _utc_now()
    return Weave(
        id=id or new_id(),
        name=name,
        metadata=WeaveMetadata(created=now, modified=now, version=1, description=description),
    )


def touch_metadata(metadata: WeaveMetadata) -> WeaveMetadata:
    """Stamp ``modified`` with the current time and bump ``version``."""

    return metadata.model_copy(update={"modified": _utc_now(), "version": metadata.version + 1})
