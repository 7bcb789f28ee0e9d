"""Trace engine: walk waves through a weave from a start knot.

``TraceRun`` holds the whole execution state (FIFO queue of flowing waves,
recorded steps, finished waves, errors, step counter) so a trace can be
driven one wave at a time. ``trace`` simply drives it to completion.

Per dequeued wave, at its current knot:

1. enter the knot
2. no outgoing threads: the wave arrives
3. evaluate the gate of every gated outgoing thread; ungated threads pass
4. nothing passes: the wave is blocked
5. otherwise the wave advances along the first passing thread and a clone
   advances along each additional one; every advanced wave is queued
6. exit the knot

The engine never raises for graph-shape problems. A missing start knot or an
exhausted step budget is recorded in ``TraceResult.errors`` and whatever was
produced so far is returned.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from weaver.core.graph import outgoing
from weaver.core.models import KnotId, Thread, Weave
from weaver.runtime.gate import evaluate_gate
from weaver.runtime.models import GateOutcome, TraceError, TraceResult, TraceStep
from weaver.runtime.observers import NullObserver, TraceObserver
from weaver.runtime.wave import Wave, advance_wave, arrive_wave, block_wave, clone_wave, create_wave

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 1000


@dataclass(frozen=True, slots=True)
class TraceOptions:
    max_steps: int = DEFAULT_MAX_STEPS
    observer: TraceObserver = field(default_factory=NullObserver)


class TraceRun:
    """A resumable trace. Each :meth:`advance` processes exactly one wave."""

    def __init__(
        self,
        weave: Weave,
        start_knot: KnotId,
        payload: Mapping[str, Any] | None = None,
        options: TraceOptions | None = None,
    ) -> None:
        self._weave = weave
        self._options = options or TraceOptions()
        self._observer = self._options.observer

        self._queue: deque[Wave] = deque()
        self._steps: list[TraceStep] = []
        self._finished: list[Wave] = []
        self._errors: list[TraceError] = []
        self._step_count = 0

        self._started = time.perf_counter()
        self._duration: float | None = None

        if start_knot not in weave.knots:
            self._record_error(
                TraceError(
                    kind="missing_start",
                    knot_id=start_knot,
                    message=f"Start knot {start_knot!r} not found",
                )
            )
            self._finish()
        else:
            self._queue.append(create_wave(payload, start_knot))

    @property
    def done(self) -> bool:
        return self._duration is not None

    @property
    def pending(self) -> int:
        """Number of flowing waves still queued."""

        return len(self._queue)

    def advance(self) -> list[TraceStep]:
        """Process the next queued wave and return the steps it produced."""

        if self.done:
            return []

        if not self._queue:
            self._finish()
            return []

        if self._step_count >= self._options.max_steps:
            head = self._queue[0]
            self._record_error(
                TraceError(
                    kind="overrun",
                    knot_id=head.current_knot or "",
                    message=f"Trace exceeded max steps ({self._options.max_steps})",
                )
            )
            self._finish()
            return []

        first_new = len(self._steps)
        self._process(self._queue.popleft())
        self._step_count += 1

        if not self._queue:
            self._finish()
        return self._steps[first_new:]

    def run(self) -> TraceResult:
        """Drive the trace until the queue empties or the budget runs out."""

        while not self.done:
            self.advance()
        return self.result()

    def result(self) -> TraceResult:
        duration = self._duration
        if duration is None:
            duration = time.perf_counter() - self._started
        return TraceResult(
            steps=list(self._steps),
            waves=list(self._finished),
            errors=list(self._errors),
            duration=duration,
        )

    def _process(self, wave: Wave) -> None:
        knot_id = wave.path[-1]
        self._observer.on_enter_knot(knot_id, wave)

        threads = outgoing(self._weave, knot_id)
        if not threads:
            self._settle(knot_id, arrive_wave(wave))
            return

        passing: list[Thread] = []
        for t in threads:
            if t.gate is None:
                passing.append(t)
                continue
            passed = evaluate_gate(t.gate.expression, wave)
            self._record(
                knot_id,
                wave,
                thread_id=t.id,
                gate_result=GateOutcome(passed=passed, expression=t.gate.expression),
            )
            self._observer.on_gate_eval(t.id, passed, t.gate.expression)
            if passed:
                passing.append(t)

        if not passing:
            self._settle(knot_id, block_wave(wave))
            return

        if len(passing) > 1:
            self._observer.on_branch(knot_id, len(passing))

        for index, t in enumerate(passing):
            carrier = wave if index == 0 else clone_wave(wave)
            advanced = advance_wave(carrier, t.target)
            self._observer.on_traverse_thread(t.id, advanced)
            self._record(knot_id, advanced, thread_id=t.id)
            self._queue.append(advanced)

        self._observer.on_exit_knot(knot_id, wave)

    def _settle(self, knot_id: KnotId, wave: Wave) -> None:
        self._finished.append(wave)
        self._record(knot_id, wave)
        self._observer.on_exit_knot(knot_id, wave)

    def _record(
        self,
        knot_id: KnotId,
        wave: Wave,
        *,
        thread_id: str | None = None,
        gate_result: GateOutcome | None = None,
    ) -> None:
        self._steps.append(
            TraceStep(knot_id=knot_id, thread_id=thread_id, wave=wave, gate_result=gate_result)
        )

    def _record_error(self, error: TraceError) -> None:
        self._errors.append(error)
        self._observer.on_error(error)

    def _finish(self) -> None:
        self._duration = time.perf_counter() - self._started
        logger.debug(
            "Trace finished",
            extra={
                "weave_id": self._weave.id,
                "steps": len(self._steps),
                "waves": len(self._finished),
                "errors": len(self._errors),
                "duration_s": self._duration,
            },
        )


def trace(
    weave: Weave,
    start_knot: KnotId,
    payload: Mapping[str, Any] | None = None,
    options: TraceOptions | None = None,
) -> TraceResult:
    """Run a trace to completion and return the full result."""

    return TraceRun(weave, start_knot, payload, options).run()
