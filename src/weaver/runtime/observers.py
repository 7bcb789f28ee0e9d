"""Trace observers.

The engine calls one method per event kind, synchronously and in step order.
Observers shared by concurrent traces (see :class:`weaver.runtime.braid.Braid`)
must be thread-safe.
"""

from __future__ import annotations

import logging
from typing import Protocol

from weaver.core.models import KnotId, ThreadId
from weaver.runtime.models import TraceError
from weaver.runtime.wave import Wave

logger = logging.getLogger(__name__)


class TraceObserver(Protocol):
    def on_enter_knot(self, knot_id: KnotId, wave: Wave) -> None: ...

    def on_exit_knot(self, knot_id: KnotId, wave: Wave) -> None: ...

    def on_traverse_thread(self, thread_id: ThreadId, wave: Wave) -> None: ...

    def on_gate_eval(self, thread_id: ThreadId, passed: bool, expression: str) -> None: ...

    def on_branch(self, knot_id: KnotId, branch_count: int) -> None: ...

    def on_error(self, error: TraceError) -> None: ...


class NullObserver:
    """Ignores every event. Subclass and override only what you need."""

    def on_enter_knot(self, knot_id: KnotId, wave: Wave) -> None:
        return

    def on_exit_knot(self, knot_id: KnotId, wave: Wave) -> None:
        return

    def on_traverse_thread(self, thread_id: ThreadId, wave: Wave) -> None:
        return

    def on_gate_eval(self, thread_id: ThreadId, passed: bool, expression: str) -> None:
        return

    def on_branch(self, knot_id: KnotId, branch_count: int) -> None:
        return

    def on_error(self, error: TraceError) -> None:
        return


class LoggingObserver(NullObserver):
    """Log every trace event, useful when debugging a weave."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self._log = log or logger
        self._level = level

    def on_enter_knot(self, knot_id: KnotId, wave: Wave) -> None:
        self._log.log(self._level, "Enter knot", extra={"knot_id": knot_id, "wave_id": wave.id})

    def on_exit_knot(self, knot_id: KnotId, wave: Wave) -> None:
        self._log.log(
            self._level,
            "Exit knot",
            extra={"knot_id": knot_id, "wave_id": wave.id, "status": wave.status.value},
        )

    def on_traverse_thread(self, thread_id: ThreadId, wave: Wave) -> None:
        self._log.log(
            self._level,
            "Traverse thread",
            extra={"thread_id": thread_id, "wave_id": wave.id, "to_knot": wave.current_knot},
        )

    def on_gate_eval(self, thread_id: ThreadId, passed: bool, expression: str) -> None:
        self._log.log(
            self._level,
            "Gate pass" if passed else "Gate block",
            extra={"thread_id": thread_id, "expression": expression},
        )

    def on_branch(self, knot_id: KnotId, branch_count: int) -> None:
        self._log.log(
            self._level, "Branch", extra={"knot_id": knot_id, "branch_count": branch_count}
        )

    def on_error(self, error: TraceError) -> None:
        self._log.warning(
            error.message, extra={"knot_id": error.knot_id, "error_kind": error.kind}
        )


class CompositeObserver(NullObserver):
    """Fan every event out to several observers, in order."""

    def __init__(self, *observers: TraceObserver) -> None:
        self._observers = observers

    def on_enter_knot(self, knot_id: KnotId, wave: Wave) -> None:
        for o in self._observers:
            o.on_enter_knot(knot_id, wave)

    def on_exit_knot(self, knot_id: KnotId, wave: Wave) -> None:
        for o in self._observers:
            o.on_exit_knot(knot_id, wave)

    def on_traverse_thread(self, thread_id: ThreadId, wave: Wave) -> None:
        for o in self._observers:
            o.on_traverse_thread(thread_id, wave)

    def on_gate_eval(self, thread_id: ThreadId, passed: bool, expression: str) -> None:
        for o in self._observers:
            o.on_gate_eval(thread_id, passed, expression)

    def on_branch(self, knot_id: KnotId, branch_count: int) -> None:
        for o in self._observers:
            o.on_branch(knot_id, branch_count)

    def on_error(self, error: TraceError) -> None:
        for o in self._observers:
            o.on_error(error)
