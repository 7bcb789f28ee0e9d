"""Exceptions raised by weave operations.

Mutation operations raise synchronously; the trace engine never raises for
graph-shape problems and records them in ``TraceResult.errors`` instead.
"""

from __future__ import annotations


class WeaveError(Exception):
    """Base class for all weave operation failures."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"error": self.message}
        if self.operation is not None:
            out["operation"] = self.operation
        return out


class WeaveReferenceError(WeaveError, LookupError):
    """An operation named a knot or thread that is not in the snapshot."""

    def __init__(
        self, *, operation: str, kind: str, missing_id: str, role: str | None = None
    ) -> None:
        subject = f"{role} {kind}" if role else kind
        super().__init__(
            f"{operation}: {subject} {missing_id!r} not found in weave",
            operation=operation,
        )
        self.kind = kind
        self.missing_id = missing_id

    def to_json(self) -> dict[str, object]:
        out = super().to_json()
        out["missingId"] = self.missing_id
        out["kind"] = self.kind
        return out


class WeaveStructuralError(WeaveError, ValueError):
    """An operation's input is structurally invalid (empty, wrong variant, collision)."""


class WeaveNotFound(WeaveError, LookupError):
    """No persisted snapshot exists with the given id."""

    def __init__(self, weave_id: str) -> None:
        super().__init__(f"Weave {weave_id!r} not found", operation="load")
        self.missing_id = weave_id

    def to_json(self) -> dict[str, object]:
        out = super().to_json()
        out["missingId"] = self.missing_id
        return out


class IllegalTransitionError(ValueError):
    """A wave was asked to leave a terminal status."""
