"""Spindle: run-to-completion and step-wise access to the trace engine."""

from __future__ import annotations

from collections.abc import Generator, Mapping
from typing import Any

from weaver.core.models import KnotId, Weave
from weaver.runtime.models import TraceResult, TraceStep
from weaver.runtime.trace import TraceOptions, TraceRun


class Spindle:
    """Schedules traces over one immutable weave snapshot."""

    def __init__(self, weave: Weave, options: TraceOptions | None = None) -> None:
        self.weave = weave
        self.options = options or TraceOptions()

    def run(self, start_knot: KnotId, payload: Mapping[str, Any] | None = None) -> TraceResult:
        """Run a full trace and return the result."""

        return TraceRun(self.weave, start_knot, payload, self.options).run()

    def steps(
        self, start_knot: KnotId, payload: Mapping[str, Any] | None = None
    ) -> Generator[TraceStep, None, TraceResult]:
        """Yield steps as the trace produces them; return the full result at the end.

        Execution is incremental: no wave is processed until the consumer asks
        for more steps.
        """

        run = TraceRun(self.weave, start_knot, payload, self.options)
        while not run.done:
            yield from run.advance()
        return run.result()
