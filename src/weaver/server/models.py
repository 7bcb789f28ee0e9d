"""Pydantic request models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateWeaveRequest(_CamelModel):
    name: str
    id: str | None = None
    description: str | None = None


class TraceRequest(_CamelModel):
    weave_id: str
    start_knot: str
    payload: dict[str, Any] = Field(default_factory=dict)
    max_steps: int | None = Field(default=None, gt=0)


class BraidEntryRequest(_CamelModel):
    start_knot: str
    payload: dict[str, Any] = Field(default_factory=dict)


class BraidRequest(_CamelModel):
    weave_id: str
    entries: list[BraidEntryRequest]
    max_steps: int | None = Field(default=None, gt=0)
