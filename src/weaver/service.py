"""Operations over persisted weaves, and the tool-calling dispatch surface.

Each mutation loads a snapshot from the store, applies the pure operation and
saves the result. A rejected operation raises before anything is written, so
the persisted snapshot is left as it was.

``dispatch`` exposes every operation by name with JSON-style (camelCase)
arguments, the shape used by tool-calling agents and the HTTP ops endpoint.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from weaver.core import operations as ops
from weaver.core.models import (
    DEFAULT_KNOT_TYPE,
    GateCondition,
    KnotId,
    KnotInput,
    Position,
    StrandInput,
    ThreadInput,
    ThresholdInput,
    Weave,
    create_weave,
)
from weaver.core.serialization import deserialize_weave, to_serialized
from weaver.core.validation import ValidationResult, validate_weave
from weaver.errors import WeaveStructuralError
from weaver.runtime.braid import Braid, BraidEntry
from weaver.runtime.models import TraceResult
from weaver.runtime.trace import DEFAULT_MAX_STEPS, TraceOptions, trace
from weaver.store import WeaveStore, WeaveSummary

logger = logging.getLogger(__name__)


class _Args(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class CreateArgs(_Args):
    name: str
    weave_id: str | None = None
    description: str | None = None


class WeaveArgs(_Args):
    weave_id: str


class ListArgs(_Args):
    pass


class SaveArgs(_Args):
    weave_json: str


class MarkArgs(WeaveArgs):
    label: str
    knot_id: KnotId | None = None
    type: str = DEFAULT_KNOT_TYPE
    x: float = 0.0
    y: float = 0.0
    data: dict[str, Any] = Field(default_factory=dict)
    strand: str | None = None


class CutArgs(WeaveArgs):
    knot_id: KnotId


class ThreadArgs(WeaveArgs):
    source: KnotId
    target: KnotId
    thread_id: str | None = None
    label: str | None = None


class SnipArgs(WeaveArgs):
    thread_id: str


class BranchArgs(WeaveArgs):
    source: KnotId
    targets: list[KnotId]
    thread_id: str | None = None
    label: str | None = None


class JoinArgs(WeaveArgs):
    sources: list[KnotId]
    target: KnotId
    thread_id: str | None = None
    label: str | None = None


class GateArgs(WeaveArgs):
    thread_id: str
    # None removes the gate.
    expression: str | None = None
    fallback: KnotId | None = None


class VeilArgs(WeaveArgs):
    knot_ids: list[KnotId]
    composite_id: KnotId | None = None


class RevealArgs(WeaveArgs):
    composite_knot_id: KnotId


class GroupArgs(WeaveArgs):
    label: str
    knots: list[KnotId] = Field(default_factory=list)
    strand_id: str | None = None


class FenceArgs(WeaveArgs):
    label: str
    boundary: list[KnotId] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    threshold_id: str | None = None


class TraceArgs(WeaveArgs):
    start_knot: KnotId
    payload: dict[str, Any] = Field(default_factory=dict)
    max_steps: int | None = Field(default=None, gt=0)


class BraidEntryArgs(_Args):
    start_knot: KnotId
    payload: dict[str, Any] = Field(default_factory=dict)


class BraidArgs(WeaveArgs):
    entries: list[BraidEntryArgs]
    max_steps: int | None = Field(default=None, gt=0)


def _thread_input(thread_id: str | None, label: str | None) -> ThreadInput | None:
    if thread_id is None and label is None:
        return None
    return ThreadInput(id=thread_id, label=label)


class WeaveService:
    """Apply named operations to weaves held in a :class:`WeaveStore`."""

    def __init__(
        self,
        *,
        store: WeaveStore,
        max_steps: int = DEFAULT_MAX_STEPS,
        braid_workers: int | None = None,
    ) -> None:
        self._store = store
        self._max_steps = max_steps
        self._braid_workers = braid_workers
        # Held across load, apply and save.
        self._lock = threading.Lock()

        self._tools: dict[str, tuple[type[_Args], Callable[[Any], dict[str, Any]]]] = {
            "create": (CreateArgs, self._tool_create),
            "load": (WeaveArgs, lambda a: to_serialized(self.load(a.weave_id))),
            "save": (SaveArgs, self._tool_save),
            "list": (ListArgs, self._tool_list),
            "delete": (WeaveArgs, self._tool_delete),
            "mark": (MarkArgs, self._tool_mark),
            "cut": (CutArgs, lambda a: to_serialized(self.cut(a.weave_id, a.knot_id))),
            "thread": (ThreadArgs, self._tool_connect(self.thread)),
            "span": (ThreadArgs, self._tool_connect(self.span)),
            "knot": (ThreadArgs, self._tool_connect(self.knot)),
            "snip": (SnipArgs, lambda a: to_serialized(self.snip(a.weave_id, a.thread_id))),
            "branch": (BranchArgs, self._tool_branch),
            "join": (JoinArgs, self._tool_join),
            "gate": (GateArgs, self._tool_gate),
            "veil": (VeilArgs, self._tool_veil),
            "reveal": (RevealArgs, self._tool_reveal),
            "group": (GroupArgs, self._tool_group),
            "fence": (FenceArgs, self._tool_fence),
            "validate": (WeaveArgs, lambda a: self.validate(a.weave_id).to_json()),
            "trace": (TraceArgs, self._tool_trace),
            "braid": (BraidArgs, self._tool_braid),
        }

    @property
    def operations(self) -> list[str]:
        return sorted(self._tools)

    # Persistence

    def create(
        self, name: str, *, weave_id: str | None = None, description: str | None = None
    ) -> Weave:
        weave = create_weave(name, id=weave_id, description=description)
        with self._lock:
            if self._store.exists(weave.id):
                raise WeaveStructuralError(
                    f"create: weave {weave.id!r} already exists", operation="create"
                )
            self._store.save(weave)
        logger.info("Weave created", extra={"weave_id": weave.id, "weave_name": name})
        return weave

    def load(self, weave_id: str) -> Weave:
        return self._store.load(weave_id)

    def save(self, weave: Weave) -> Weave:
        with self._lock:
            self._store.save(weave)
        return weave

    def list(self) -> list[WeaveSummary]:
        return self._store.list()

    def delete(self, weave_id: str) -> None:
        with self._lock:
            self._store.delete(weave_id)

    # Mutations

    def _apply(self, operation: str, weave_id: str, fn: Callable[[Weave], Weave]) -> Weave:
        with self._lock:
            updated = fn(self._store.load(weave_id))
            self._store.save(updated)
        logger.info(
            "Weave operation applied",
            extra={
                "operation": operation,
                "weave_id": weave_id,
                "version": updated.metadata.version,
            },
        )
        return updated

    def mark(self, weave_id: str, input: KnotInput) -> Weave:
        return self._apply("mark", weave_id, lambda w: ops.mark(w, input))

    def thread(
        self, weave_id: str, source: KnotId, target: KnotId, input: ThreadInput | None = None
    ) -> Weave:
        return self._apply("thread", weave_id, lambda w: ops.thread(w, source, target, input))

    def span(
        self, weave_id: str, source: KnotId, target: KnotId, input: ThreadInput | None = None
    ) -> Weave:
        return self._apply("span", weave_id, lambda w: ops.span(w, source, target, input))

    def knot(
        self, weave_id: str, source: KnotId, target: KnotId, input: ThreadInput | None = None
    ) -> Weave:
        return self._apply("knot", weave_id, lambda w: ops.knot(w, source, target, input))

    def branch(
        self,
        weave_id: str,
        source: KnotId,
        targets: list[KnotId],
        input: ThreadInput | None = None,
    ) -> Weave:
        return self._apply("branch", weave_id, lambda w: ops.branch(w, source, targets, input))

    def join(
        self,
        weave_id: str,
        sources: list[KnotId],
        target: KnotId,
        input: ThreadInput | None = None,
    ) -> Weave:
        return self._apply("join", weave_id, lambda w: ops.join(w, sources, target, input))

    def snip(self, weave_id: str, thread_id: str) -> Weave:
        return self._apply("snip", weave_id, lambda w: ops.snip(w, thread_id))

    def cut(self, weave_id: str, knot_id: KnotId) -> Weave:
        return self._apply("cut", weave_id, lambda w: ops.cut(w, knot_id))

    def gate(self, weave_id: str, thread_id: str, condition: GateCondition | None) -> Weave:
        return self._apply("gate", weave_id, lambda w: ops.gate(w, thread_id, condition))

    def veil(
        self, weave_id: str, knot_ids: list[KnotId], composite_id: KnotId | None = None
    ) -> Weave:
        return self._apply("veil", weave_id, lambda w: ops.veil(w, knot_ids, composite_id))

    def reveal(self, weave_id: str, composite_id: KnotId) -> Weave:
        return self._apply("reveal", weave_id, lambda w: ops.reveal(w, composite_id))

    def group(self, weave_id: str, input: StrandInput) -> Weave:
        return self._apply("group", weave_id, lambda w: ops.group(w, input))

    def fence(self, weave_id: str, input: ThresholdInput) -> Weave:
        return self._apply("fence", weave_id, lambda w: ops.fence(w, input))

    # Read-only

    def validate(self, weave_id: str) -> ValidationResult:
        return validate_weave(self._store.load(weave_id))

    def _options(self, max_steps: int | None) -> TraceOptions:
        return TraceOptions(max_steps=max_steps or self._max_steps)

    def trace(
        self,
        weave_id: str,
        start_knot: KnotId,
        payload: Mapping[str, Any] | None = None,
        *,
        max_steps: int | None = None,
    ) -> TraceResult:
        weave = self._store.load(weave_id)
        result = trace(weave, start_knot, payload, self._options(max_steps))
        logger.info(
            "Trace completed",
            extra={
                "weave_id": weave_id,
                "start_knot": start_knot,
                "steps": len(result.steps),
                "arrived": len(result.arrived),
                "blocked": len(result.blocked),
                "errors": len(result.errors),
            },
        )
        return result

    def braid(
        self, weave_id: str, entries: list[BraidEntry], *, max_steps: int | None = None
    ) -> list[TraceResult]:
        weave = self._store.load(weave_id)
        braid = Braid(weave, self._options(max_steps), max_workers=self._braid_workers)
        return braid.run(entries)

    # Tool-calling surface

    def dispatch(self, name: str, arguments: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run the operation called ``name`` and return a JSON-ready dict."""

        tool = self._tools.get(name)
        if tool is None:
            raise WeaveStructuralError(
                f"Unknown operation {name!r}; expected one of {self.operations}",
                operation=name,
            )
        args_model, handler = tool
        try:
            args = args_model.model_validate(dict(arguments or {}))
        except ValidationError as e:
            raise WeaveStructuralError(
                f"{name}: invalid arguments: {e.errors(include_url=False)}", operation=name
            ) from e
        return handler(args)

    def _tool_create(self, a: CreateArgs) -> dict[str, Any]:
        return to_serialized(self.create(a.name, weave_id=a.weave_id, description=a.description))

    def _tool_save(self, a: SaveArgs) -> dict[str, Any]:
        try:
            weave = deserialize_weave(a.weave_json)
        except ValueError as e:
            raise WeaveStructuralError(f"save: invalid weave JSON: {e}", operation="save") from e
        return to_serialized(self.save(weave))

    def _tool_list(self, _a: ListArgs) -> dict[str, Any]:
        return {"weaves": [s.model_dump(mode="json") for s in self.list()]}

    def _tool_delete(self, a: WeaveArgs) -> dict[str, Any]:
        self.delete(a.weave_id)
        return {"deleted": a.weave_id}

    def _tool_mark(self, a: MarkArgs) -> dict[str, Any]:
        input = KnotInput(
            id=a.knot_id,
            label=a.label,
            type=a.type,
            position=Position(x=a.x, y=a.y),
            data=a.data,
            strand=a.strand,
        )
        return to_serialized(self.mark(a.weave_id, input))

    def _tool_connect(
        self, method: Callable[..., Weave]
    ) -> Callable[[ThreadArgs], dict[str, Any]]:
        def handler(a: ThreadArgs) -> dict[str, Any]:
            return to_serialized(
                method(a.weave_id, a.source, a.target, _thread_input(a.thread_id, a.label))
            )

        return handler

    def _tool_branch(self, a: BranchArgs) -> dict[str, Any]:
        input = _thread_input(a.thread_id, a.label)
        return to_serialized(self.branch(a.weave_id, a.source, a.targets, input))

    def _tool_join(self, a: JoinArgs) -> dict[str, Any]:
        input = _thread_input(a.thread_id, a.label)
        return to_serialized(self.join(a.weave_id, a.sources, a.target, input))

    def _tool_gate(self, a: GateArgs) -> dict[str, Any]:
        condition = (
            GateCondition(expression=a.expression, fallback=a.fallback)
            if a.expression is not None
            else None
        )
        return to_serialized(self.gate(a.weave_id, a.thread_id, condition))

    def _tool_veil(self, a: VeilArgs) -> dict[str, Any]:
        return to_serialized(self.veil(a.weave_id, a.knot_ids, a.composite_id))

    def _tool_reveal(self, a: RevealArgs) -> dict[str, Any]:
        return to_serialized(self.reveal(a.weave_id, a.composite_knot_id))

    def _tool_group(self, a: GroupArgs) -> dict[str, Any]:
        input = StrandInput(id=a.strand_id, label=a.label, knots=a.knots)
        return to_serialized(self.group(a.weave_id, input))

    def _tool_fence(self, a: FenceArgs) -> dict[str, Any]:
        input = ThresholdInput(
            id=a.threshold_id, label=a.label, boundary=a.boundary, permissions=a.permissions
        )
        return to_serialized(self.fence(a.weave_id, input))

    def _tool_trace(self, a: TraceArgs) -> dict[str, Any]:
        return self.trace(a.weave_id, a.start_knot, a.payload, max_steps=a.max_steps).to_json()

    def _tool_braid(self, a: BraidArgs) -> dict[str, Any]:
        entries = [BraidEntry(start_knot=e.start_knot, payload=e.payload) for e in a.entries]
        results = self.braid(a.weave_id, entries, max_steps=a.max_steps)
        return {"results": [r.to_json() for r in results]}
