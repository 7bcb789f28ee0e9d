"""Execution runtime: waves, gates, the trace engine and its schedulers."""

from weaver.runtime.braid import Braid, BraidEntry
from weaver.runtime.gate import GateSyntaxError, compile_gate, evaluate_gate
from weaver.runtime.models import GateOutcome, TraceError, TraceResult, TraceStep
from weaver.runtime.observers import (
    CompositeObserver,
    LoggingObserver,
    NullObserver,
    TraceObserver,
)
from weaver.runtime.spindle import Spindle
from weaver.runtime.trace import DEFAULT_MAX_STEPS, TraceOptions, TraceRun, trace
from weaver.runtime.wave import (
    Wave,
    WaveStatus,
    advance_wave,
    arrive_wave,
    block_wave,
    clone_wave,
    create_wave,
    merge_waves,
)

__all__ = [
    "DEFAULT_MAX_STEPS",
    "Braid",
    "BraidEntry",
    "CompositeObserver",
    "GateOutcome",
    "GateSyntaxError",
    "LoggingObserver",
    "NullObserver",
    "Spindle",
    "TraceError",
    "TraceObserver",
    "TraceOptions",
    "TraceResult",
    "TraceRun",
    "TraceStep",
    "Wave",
    "WaveStatus",
    "advance_wave",
    "arrive_wave",
    "block_wave",
    "clone_wave",
    "compile_gate",
    "create_wave",
    "evaluate_gate",
    "merge_waves",
    "trace",
]
