"""JSON (de)serialization of weave snapshots.

Mappings serialize to string-keyed objects in insertion order and thresholds
to an ordered list, so ``deserialize_weave(serialize_weave(w)) == w``.
"""

from __future__ import annotations

import json
from typing import Any

from weaver.core.models import Weave


def to_serialized(weave: Weave) -> dict[str, Any]:
    """Convert a weave to a JSON-ready dict."""

    return weave.model_dump(mode="json")


def from_serialized(raw: dict[str, Any]) -> Weave:
    """Build a weave from a JSON-ready dict. Missing collections default to empty."""

    return Weave.model_validate(raw)


def serialize_weave(weave: Weave) -> str:
    return json.dumps(to_serialized(weave), indent=2, ensure_ascii=False) + "\n"


def deserialize_weave(text: str) -> Weave:
    return from_serialized(json.loads(text))
