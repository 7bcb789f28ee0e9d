"""Graph model, graph algorithms, mutation operations and validation."""

from weaver.core.graph import detect_cycles, find_paths, incoming, neighbors, outgoing, toposort
from weaver.core.models import (
    AnyKnot,
    CompositeKnot,
    GateCondition,
    Knot,
    KnotInput,
    Position,
    Strand,
    StrandInput,
    Thread,
    ThreadInput,
    Threshold,
    ThresholdInput,
    VeiledSubgraph,
    Weave,
    WeaveMetadata,
    create_weave,
)
from weaver.core.operations import (
    branch,
    cut,
    fence,
    gate,
    group,
    join,
    knot,
    mark,
    reveal,
    snip,
    span,
    thread,
    veil,
)
from weaver.core.serialization import (
    deserialize_weave,
    from_serialized,
    serialize_weave,
    to_serialized,
)
from weaver.core.validation import ValidationIssue, ValidationResult, validate_weave

__all__ = [
    "AnyKnot",
    "CompositeKnot",
    "GateCondition",
    "Knot",
    "KnotInput",
    "Position",
    "Strand",
    "StrandInput",
    "Thread",
    "ThreadInput",
    "Threshold",
    "ThresholdInput",
    "ValidationIssue",
    "ValidationResult",
    "VeiledSubgraph",
    "Weave",
    "WeaveMetadata",
    "branch",
    "create_weave",
    "cut",
    "deserialize_weave",
    "detect_cycles",
    "fence",
    "find_paths",
    "from_serialized",
    "gate",
    "group",
    "incoming",
    "join",
    "knot",
    "mark",
    "neighbors",
    "outgoing",
    "reveal",
    "serialize_weave",
    "snip",
    "span",
    "thread",
    "to_serialized",
    "toposort",
    "validate_weave",
    "veil",
]
