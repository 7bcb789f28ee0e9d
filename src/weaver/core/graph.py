"""Pure graph queries over a weave snapshot."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from weaver.core.models import AnyKnot, KnotId, Thread, Weave


def neighbors(weave: Weave, knot_id: KnotId) -> list[AnyKnot]:
    """Knots connected to ``knot_id`` by a thread in either direction, de-duplicated."""

    ids: dict[KnotId, None] = {}
    for t in weave.threads.values():
        if t.source == knot_id:
            ids[t.target] = None
        if t.target == knot_id:
            ids[t.source] = None
    return [weave.knots[i] for i in ids if i in weave.knots]


def incoming(weave: Weave, knot_id: KnotId) -> list[Thread]:
    return [t for t in weave.threads.values() if t.target == knot_id]


def outgoing(weave: Weave, knot_id: KnotId) -> list[Thread]:
    return [t for t in weave.threads.values() if t.source == knot_id]


def find_paths(
    weave: Weave, from_id: KnotId, to_id: KnotId, max_depth: int = 20
) -> list[list[KnotId]]:
    """Enumerate every simple path from ``from_id`` to ``to_id`` breadth-first.

    This is exhaustive rather than shortest-path and grows exponentially with
    the branching factor; ``max_depth`` bounds how long a path may grow before
    it stops being extended.
    """

    results: list[list[KnotId]] = []
    queue: deque[list[KnotId]] = deque([[from_id]])

    while queue:
        path = queue.popleft()
        current = path[-1]

        if current == to_id and len(path) > 1:
            results.append(path)
            continue

        if len(path) > max_depth:
            continue

        for t in outgoing(weave, current):
            if t.target not in path:
                queue.append([*path, t.target])

    return results


def detect_cycles(weave: Weave) -> list[list[KnotId]]:
    """Find cycles with a depth-first walk.

    Each back edge records the slice of the current path from the re-entered
    knot through the current knot, e.g. ``[a, b, c]`` for ``a -> b -> c -> a``.
    """

    cycles: list[list[KnotId]] = []
    visited: set[KnotId] = set()

    for root in weave.knots:
        if root in visited:
            continue

        path: list[KnotId] = [root]
        on_stack: set[KnotId] = {root}
        visited.add(root)
        frames: list[Iterator[Thread]] = [iter(outgoing(weave, root))]

        while frames:
            t = next(frames[-1], None)
            if t is None:
                frames.pop()
                on_stack.discard(path.pop())
                continue

            if t.target in on_stack:
                cycles.append(path[path.index(t.target) :])
            elif t.target not in visited:
                visited.add(t.target)
                on_stack.add(t.target)
                path.append(t.target)
                frames.append(iter(outgoing(weave, t.target)))

    return cycles


def toposort(weave: Weave) -> list[KnotId] | None:
    """Kahn's algorithm. Returns ``None`` (not a partial order) if any cycle exists."""

    in_degree: dict[KnotId, int] = dict.fromkeys(weave.knots, 0)
    for t in weave.threads.values():
        if t.target in in_degree:
            in_degree[t.target] += 1

    queue = deque(knot_id for knot_id, degree in in_degree.items() if degree == 0)
    result: list[KnotId] = []

    while queue:
        current = queue.popleft()
        result.append(current)
        for t in outgoing(weave, current):
            if t.target not in in_degree:
                continue
            in_degree[t.target] -= 1
            if in_degree[t.target] == 0:
                queue.append(t.target)

    return result if len(result) == len(weave.knots) else None
