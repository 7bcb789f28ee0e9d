"""Structural checks over a weave snapshot.

Only ``error`` issues make a weave invalid. Warnings and info are advisory
and never block execution.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from weaver.core.graph import detect_cycles, incoming, outgoing
from weaver.core.knot_types import KnotTypeRegistry, default_registry
from weaver.core.models import KnotId, ThreadId, Weave

Severity = Literal["error", "warning", "info"]


class ValidationIssue(BaseModel):
    severity: Severity
    message: str
    knot_id: KnotId | None = None
    thread_id: ThreadId | None = None


class ValidationResult(BaseModel):
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def infos(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "info"]

    def to_json(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "issues": [i.model_dump(mode="json") for i in self.issues],
        }


def validate_weave(
    weave: Weave, registry: KnotTypeRegistry = default_registry
) -> ValidationResult:
    """Run every check independently and collect the issues."""

    issues: list[ValidationIssue] = []

    if len(weave.knots) > 1:
        for knot_id, k in weave.knots.items():
            if not incoming(weave, knot_id) and not outgoing(weave, knot_id):
                issues.append(
                    ValidationIssue(
                        severity="warning",
                        knot_id=knot_id,
                        message=f"{k.label!r} is disconnected (no threads)",
                    )
                )

    for knot_id, k in weave.knots.items():
        if not registry.has(k.type):
            continue
        required = registry.get(k.type).required_inputs
        connected = len(incoming(weave, knot_id))
        if required and connected < len(required):
            issues.append(
                ValidationIssue(
                    severity="warning",
                    knot_id=knot_id,
                    message=(
                        f"{k.label!r} may be missing {len(required) - connected} "
                        "input connection(s)"
                    ),
                )
            )

    for thread_id, t in weave.threads.items():
        for role, endpoint in (("source", t.source), ("target", t.target)):
            if endpoint not in weave.knots:
                issues.append(
                    ValidationIssue(
                        severity="error",
                        thread_id=thread_id,
                        message=f"Thread references missing {role} knot {endpoint!r}",
                    )
                )

    for thread_id, t in weave.threads.items():
        if t.source == t.target:
            k = weave.knots.get(t.source)
            issues.append(
                ValidationIssue(
                    severity="warning",
                    thread_id=thread_id,
                    knot_id=t.source,
                    message=f"Thread is a self-loop on {k.label if k else t.source!r}",
                )
            )

    cycles = detect_cycles(weave)
    if cycles:
        issues.append(
            ValidationIssue(
                severity="info",
                message=(
                    f"Weave contains {len(cycles)} cycle(s); a trace may loop until its "
                    "step budget runs out"
                ),
            )
        )

    if not weave.knots:
        issues.append(
            ValidationIssue(
                severity="info", message="Weave is empty; add knots to build a workflow"
            )
        )

    return ValidationResult(issues=issues)
