"""Copy-on-write mutation operations.

Every operation takes a snapshot and returns a new one; the input is never
modified. All referenced ids are checked before anything is built, so a
failing call raises without producing a partially applied snapshot. Each
successful call bumps the metadata version exactly once.

Unchanged entities are shared between the input and output snapshots. That is
safe because entities are frozen and nothing in this package edits their data
bags in place.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from weaver.core.models import (
    CompositeKnot,
    GateCondition,
    Knot,
    KnotId,
    KnotInput,
    Position,
    Strand,
    StrandInput,
    Thread,
    ThreadId,
    ThreadInput,
    Threshold,
    ThresholdInput,
    VeiledSubgraph,
    Weave,
    new_id,
    touch_metadata,
)
from weaver.errors import WeaveReferenceError, WeaveStructuralError

logger = logging.getLogger(__name__)


def _commit(weave: Weave, **changes: Any) -> Weave:
    return weave.model_copy(update={**changes, "metadata": touch_metadata(weave.metadata)})


def _require_knot(weave: Weave, knot_id: KnotId, operation: str, role: str | None = None) -> None:
    if knot_id not in weave.knots:
        raise WeaveReferenceError(operation=operation, kind="knot", missing_id=knot_id, role=role)


def _require_thread(weave: Weave, thread_id: ThreadId, operation: str) -> Thread:
    existing = weave.threads.get(thread_id)
    if existing is None:
        raise WeaveReferenceError(operation=operation, kind="thread", missing_id=thread_id)
    return existing


def _thread_ids(input: ThreadInput | None, count: int) -> list[ThreadId]:
    if input is None or input.id is None:
        return [new_id() for _ in range(count)]
    if count == 1:
        return [input.id]
    return [f"{input.id}-{n}" for n in range(1, count + 1)]


def _connect(
    weave: Weave,
    pairs: Sequence[tuple[KnotId, KnotId]],
    input: ThreadInput | None,
    operation: str,
) -> Weave:
    for source, target in pairs:
        _require_knot(weave, source, operation, role="source")
        _require_knot(weave, target, operation, role="target")

    ids = _thread_ids(input, len(pairs))
    for thread_id in ids:
        if thread_id in weave.threads:
            raise WeaveStructuralError(
                f"{operation}: thread {thread_id!r} already exists in weave", operation=operation
            )

    threads = dict(weave.threads)
    for thread_id, (source, target) in zip(ids, pairs, strict=True):
        threads[thread_id] = Thread(
            id=thread_id,
            source=source,
            target=target,
            label=input.label if input else None,
            gate=input.gate if input else None,
            data=dict(input.data) if input else {},
        )
    return _commit(weave, threads=threads)


def mark(weave: Weave, input: KnotInput) -> Weave:
    """Place a new knot in the weave."""

    knot_id = input.id or new_id()
    if knot_id in weave.knots:
        raise WeaveStructuralError(
            f"mark: knot {knot_id!r} already exists in weave", operation="mark"
        )
    knot = Knot(
        id=knot_id,
        label=input.label,
        type=input.type,
        position=input.position,
        data=dict(input.data),
        strand=input.strand,
    )
    return _commit(weave, knots={**weave.knots, knot_id: knot})


def thread(
    weave: Weave, source: KnotId, target: KnotId, input: ThreadInput | None = None
) -> Weave:
    """Connect two existing knots with a new thread."""

    return _connect(weave, [(source, target)], input, "thread")


def branch(
    weave: Weave, source: KnotId, targets: Sequence[KnotId], input: ThreadInput | None = None
) -> Weave:
    """Fan out from one knot to several targets, all or nothing."""

    if not targets:
        raise WeaveStructuralError("branch: at least one target is required", operation="branch")
    return _connect(weave, [(source, t) for t in targets], input, "branch")


def join(
    weave: Weave, sources: Sequence[KnotId], target: KnotId, input: ThreadInput | None = None
) -> Weave:
    """Fan in from several knots to one target, all or nothing."""

    if not sources:
        raise WeaveStructuralError("join: at least one source is required", operation="join")
    return _connect(weave, [(s, target) for s in sources], input, "join")


def span(
    weave: Weave, source: KnotId, target: KnotId, input: ThreadInput | None = None
) -> Weave:
    """Bridge two otherwise disconnected knots. Same mechanics as ``thread``."""

    return _connect(weave, [(source, target)], input, "span")


def knot(
    weave: Weave, source: KnotId, target: KnotId, input: ThreadInput | None = None
) -> Weave:
    """Close a cycle back to an earlier knot. Same mechanics as ``thread``."""

    return _connect(weave, [(source, target)], input, "knot")


def gate(weave: Weave, thread_id: ThreadId, condition: GateCondition | None) -> Weave:
    """Replace a thread's gate. ``None`` removes it."""

    existing = _require_thread(weave, thread_id, "gate")
    threads = {**weave.threads, thread_id: existing.model_copy(update={"gate": condition})}
    return _commit(weave, threads=threads)


def veil(weave: Weave, knot_ids: Sequence[KnotId], composite_id: KnotId | None = None) -> Weave:
    """Hide a set of knots and their internal threads behind one composite knot.

    Threads with exactly one endpoint inside the set are repointed to the
    composite, and the original endpoint is remembered so ``reveal`` can put
    it back.
    """

    ids = list(dict.fromkeys(knot_ids))
    if not ids:
        raise WeaveStructuralError("veil: cannot veil an empty set of knots", operation="veil")
    for knot_id in ids:
        _require_knot(weave, knot_id, "veil")

    members = set(ids)
    cid = composite_id or new_id()
    if cid in weave.knots and cid not in members:
        raise WeaveStructuralError(
            f"veil: knot {cid!r} already exists in weave", operation="veil"
        )

    internal: list[Thread] = []
    attachments: dict[ThreadId, KnotId] = {}
    threads: dict[ThreadId, Thread] = {}
    for thread_id, t in weave.threads.items():
        source_in = t.source in members
        target_in = t.target in members
        if source_in and target_in:
            internal.append(t)
        elif source_in:
            attachments[thread_id] = t.source
            threads[thread_id] = t.model_copy(update={"source": cid})
        elif target_in:
            attachments[thread_id] = t.target
            threads[thread_id] = t.model_copy(update={"target": cid})
        else:
            threads[thread_id] = t

    veiled = [weave.knots[i] for i in ids]
    composite = CompositeKnot(
        id=cid,
        label=f"Veiled ({len(veiled)} knots)",
        position=Position(
            x=sum(k.position.x for k in veiled) / len(veiled),
            y=sum(k.position.y for k in veiled) / len(veiled),
        ),
        veiled=VeiledSubgraph(knots=veiled, threads=internal, attachments=attachments),
    )

    knots = {k: v for k, v in weave.knots.items() if k not in members}
    knots[cid] = composite

    logger.debug(
        "Veiled knots",
        extra={
            "weave_id": weave.id,
            "composite_id": cid,
            "knot_count": len(veiled),
            "internal_threads": len(internal),
            "external_threads": len(attachments),
        },
    )
    return _commit(weave, knots=knots, threads=threads)


def reveal(weave: Weave, composite_id: KnotId) -> Weave:
    """Expand a composite knot back into the subgraph it hides."""

    composite = weave.knots.get(composite_id)
    if composite is None:
        raise WeaveReferenceError(operation="reveal", kind="knot", missing_id=composite_id)
    if not isinstance(composite, CompositeKnot):
        raise WeaveStructuralError(
            f"reveal: knot {composite_id!r} is not a veiled composite", operation="reveal"
        )

    sub = composite.veiled
    knots = {k: v for k, v in weave.knots.items() if k != composite_id}

    clashing_knots = [k.id for k in sub.knots if k.id in knots]
    clashing_threads = [t.id for t in sub.threads if t.id in weave.threads]
    if clashing_knots or clashing_threads:
        raise WeaveStructuralError(
            "reveal: veiled ids now clash with the weave "
            f"(knots={clashing_knots}, threads={clashing_threads})",
            operation="reveal",
        )

    unmapped = [
        thread_id
        for thread_id, t in weave.threads.items()
        if composite_id in (t.source, t.target) and thread_id not in sub.attachments
    ]
    if unmapped:
        raise WeaveStructuralError(
            f"reveal: threads {unmapped} were attached to {composite_id!r} after it was "
            "veiled; snip them before revealing",
            operation="reveal",
        )

    threads: dict[ThreadId, Thread] = {}
    for thread_id, t in weave.threads.items():
        if t.source == composite_id:
            t = t.model_copy(update={"source": sub.attachments[thread_id]})
        if t.target == composite_id:
            t = t.model_copy(update={"target": sub.attachments[thread_id]})
        threads[thread_id] = t
    for t in sub.threads:
        threads[t.id] = t
    for k in sub.knots:
        knots[k.id] = k

    return _commit(weave, knots=knots, threads=threads)


def snip(weave: Weave, thread_id: ThreadId) -> Weave:
    """Remove a single thread."""

    _require_thread(weave, thread_id, "snip")
    threads = {k: v for k, v in weave.threads.items() if k != thread_id}
    return _commit(weave, threads=threads)


def cut(weave: Weave, knot_id: KnotId) -> Weave:
    """Remove a knot, every thread touching it, and its strand/threshold memberships."""

    _require_knot(weave, knot_id, "cut")

    knots = {k: v for k, v in weave.knots.items() if k != knot_id}
    threads = {
        k: t for k, t in weave.threads.items() if t.source != knot_id and t.target != knot_id
    }
    strands = {
        k: (
            s.model_copy(update={"knots": [i for i in s.knots if i != knot_id]})
            if knot_id in s.knots
            else s
        )
        for k, s in weave.strands.items()
    }
    thresholds = [
        (
            b.model_copy(update={"boundary": [i for i in b.boundary if i != knot_id]})
            if knot_id in b.boundary
            else b
        )
        for b in weave.thresholds
    ]
    return _commit(weave, knots=knots, threads=threads, strands=strands, thresholds=thresholds)


def group(weave: Weave, input: StrandInput) -> Weave:
    """Create a strand over existing knots."""

    strand_id = input.id or new_id()
    if strand_id in weave.strands:
        raise WeaveStructuralError(
            f"group: strand {strand_id!r} already exists in weave", operation="group"
        )
    for knot_id in input.knots:
        _require_knot(weave, knot_id, "group")
    strand = Strand(id=strand_id, label=input.label, knots=list(dict.fromkeys(input.knots)))
    return _commit(weave, strands={**weave.strands, strand_id: strand})


def fence(weave: Weave, input: ThresholdInput) -> Weave:
    """Create a threshold boundary over existing knots."""

    threshold_id = input.id or new_id()
    if any(b.id == threshold_id for b in weave.thresholds):
        raise WeaveStructuralError(
            f"fence: threshold {threshold_id!r} already exists in weave", operation="fence"
        )
    for knot_id in input.boundary:
        _require_knot(weave, knot_id, "fence")
    threshold = Threshold(
        id=threshold_id,
        label=input.label,
        boundary=list(dict.fromkeys(input.boundary)),
        permissions=list(input.permissions),
    )
    return _commit(weave, thresholds=[*weave.thresholds, threshold])
