"""Knot type registry.

Declares categories, colors and ports per knot type. The validator uses the
declared input ports to warn about knots that look under-connected.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

WILDCARD_PORT = "*"


class KnotCategory(str, Enum):
    LOADER = "loader"
    CONDITIONING = "conditioning"
    SAMPLER = "sampler"
    LATENT = "latent"
    IMAGE = "image"
    VAE = "vae"
    CONTROL = "control"
    UTILITY = "utility"
    DEFAULT = "default"


CATEGORY_COLORS: dict[KnotCategory, str] = {
    KnotCategory.LOADER: "#4a7a4a",
    KnotCategory.CONDITIONING: "#7a4a7a",
    KnotCategory.SAMPLER: "#4a4a7a",
    KnotCategory.LATENT: "#7a6a3a",
    KnotCategory.IMAGE: "#3a6a7a",
    KnotCategory.VAE: "#6a4a3a",
    KnotCategory.CONTROL: "#7a7a3a",
    KnotCategory.UTILITY: "#4a4a4a",
    KnotCategory.DEFAULT: "#4a4a6a",
}


class PortDefinition(BaseModel):
    name: str
    type: str = WILDCARD_PORT

    @property
    def is_wildcard(self) -> bool:
        return self.type == WILDCARD_PORT


class KnotTypeDefinition(BaseModel):
    type: str
    label: str
    category: KnotCategory = KnotCategory.DEFAULT
    color: str = CATEGORY_COLORS[KnotCategory.DEFAULT]
    default_data: dict[str, Any] = Field(default_factory=dict)
    inputs: list[PortDefinition] = Field(default_factory=list)
    outputs: list[PortDefinition] = Field(default_factory=list)
    description: str | None = None

    @property
    def required_inputs(self) -> list[PortDefinition]:
        """Input ports with a concrete (non-wildcard) type."""

        return [p for p in self.inputs if not p.is_wildcard]


BUILT_IN_TYPES: tuple[KnotTypeDefinition, ...] = (
    KnotTypeDefinition(
        type="default",
        label="Knot",
        inputs=[PortDefinition(name="in")],
        outputs=[PortDefinition(name="out")],
    ),
    KnotTypeDefinition(
        type="veiled",
        label="Veiled",
        category=KnotCategory.CONTROL,
        color=CATEGORY_COLORS[KnotCategory.CONTROL],
        inputs=[PortDefinition(name="in")],
        outputs=[PortDefinition(name="out")],
        description="Composite knot hiding a veiled subgraph",
    ),
)


class KnotTypeRegistry:
    """Mapping of knot type name to its definition."""

    def __init__(self, definitions: tuple[KnotTypeDefinition, ...] = BUILT_IN_TYPES) -> None:
        self._types: dict[str, KnotTypeDefinition] = {d.type: d for d in definitions}

    def register(self, definition: KnotTypeDefinition) -> None:
        """Register a new type or replace an existing one."""

        self._types[definition.type] = definition

    def has(self, type_name: str) -> bool:
        return type_name in self._types

    def get(self, type_name: str) -> KnotTypeDefinition:
        """Return the definition for ``type_name``, or the ``default`` type."""

        return self._types.get(type_name) or self._types["default"]

    def all(self) -> list[KnotTypeDefinition]:
        return list(self._types.values())

    def by_category(self, category: KnotCategory) -> list[KnotTypeDefinition]:
        return [d for d in self._types.values() if d.category == category]


default_registry = KnotTypeRegistry()
