"""Braid: concurrent fan-out of independent traces over one snapshot.

Snapshots are immutable and each trace owns its waves, so parallel traces
share the weave read-only without any locking.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from weaver.core.models import KnotId, Weave
from weaver.runtime.models import TraceResult
from weaver.runtime.trace import TraceOptions, trace

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BraidEntry:
    start_knot: KnotId
    payload: Mapping[str, Any] = field(default_factory=dict)


class Braid:
    """Run several traces concurrently and collect every result."""

    def __init__(
        self,
        weave: Weave,
        options: TraceOptions | None = None,
        *,
        max_workers: int | None = None,
    ) -> None:
        self.weave = weave
        self.options = options or TraceOptions()
        self.max_workers = max_workers

    def run(self, entries: Sequence[BraidEntry]) -> list[TraceResult]:
        """Trace every entry in parallel. Results are returned in entry order."""

        if not entries:
            return []

        logger.info(
            "Braid started",
            extra={"weave_id": self.weave.id, "entries": len(entries)},
        )
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix=f"braid-{self.weave.id}"
        ) as pool:
            futures = [
                pool.submit(trace, self.weave, e.start_knot, e.payload, self.options)
                for e in entries
            ]
            return [f.result() for f in futures]

    def run_braided(
        self, start_knot: KnotId, payload: Mapping[str, Any] | None = None
    ) -> TraceResult:
        """Run one trace. Branching waves are already fanned out inside the engine."""

        return trace(self.weave, start_knot, payload, self.options)
