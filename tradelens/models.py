"""Pydantic models for tradelens."""

from collections.abc import Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tradelens.geo.zoom import ZoomTransform


class Role(str, Enum):
    SUPPLIER = "supplier"
    RECIPIENT = "recipient"


class ViewStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


# --- Normalized records ---


class TradeRecord(BaseModel):
    """One supplier/recipient/year/value observation."""
    model_config = ConfigDict(frozen=True)

    supplier: str
    recipient: str | None = None
    year: int
    value: float = Field(ge=0.0)
    category: str | None = None
    status: str | None = None
    value_missing: bool = False
    supplier_mapped: bool = True
    recipient_mapped: bool = True


class NormalizedCountry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    aliases: frozenset[str] = frozenset()


# --- Derived entities ---


class HierarchyNode(BaseModel):
    """A value-weighted tree node. Rebuilt per render pass, never mutated."""
    model_config = ConfigDict(frozen=True)

    name: str
    depth: int = 0
    value: float = 0.0
    children: tuple["HierarchyNode", ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def descendants(self) -> Iterator["HierarchyNode"]:
        """Pre-order traversal, self first."""
        yield self
        for child in self.children:
            yield from child.descendants()

    def leaves(self) -> list["HierarchyNode"]:
        return [n for n in self.descendants() if n.is_leaf]


HierarchyNode.model_rebuild()


class GraphNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    value: float = 0.0


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    target_id: str
    weight: float


# --- Transient UI content ---


class DetailRow(BaseModel):
    label: str
    value: str


class ModalContent(BaseModel):
    """Structured record detail shown on click-to-drill."""
    entity_id: str
    title: str
    summary: list[DetailRow] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)


class TooltipContent(BaseModel):
    entity_id: str
    lines: list[str]


# --- View state ---


class ViewState(BaseModel):
    """Per-visualization interactive state. Owned by exactly one view."""

    selected_year: int | None = None
    selected_category: str | None = None
    selected_entities: set[str] = Field(default_factory=set)
    focus_node: str | None = None
    zoom_transform: ZoomTransform = Field(default_factory=ZoomTransform)
    hovered_entity: str | None = None
    active_modal: ModalContent | None = None
