"""Data model for persisted choice graphs.

A graph document is loaded and saved as one unit. Attribute names are
snake_case; the stored JSON uses the camelCase aliases, so always dump
through ``Graph.to_document()``.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

GRAPH_VERSION = 1

DEFAULT_CHOICE_TEXT = "Choice"
DEFAULT_GRAPH_NAME = "New Graph"
UNTITLED_GRAPH_NAME = "Untitled Graph"


class NodeType(str, Enum):
    """Branch semantics of a node's outgoing choices."""

    xor = "xor"  # at most one active choice
    or_ = "or"  # any number of active choices


def normalize_node_type(value: Any) -> NodeType:
    """Only a case-insensitive "or" is OR; everything else is XOR."""
    if isinstance(value, NodeType):
        return value
    return NodeType.or_ if str(value or "").strip().lower() == "or" else NodeType.xor


class _DocumentModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Button(_DocumentModel):
    """label of an edge, owned by the edge's source node."""

    id: str
    text: str = DEFAULT_CHOICE_TEXT
    to: str | None = None  # mirrors the owning edge's target


class Node(_DocumentModel):
    """a decision point in the graph."""

    id: str
    x: float = 0
    y: float = 0
    text: str
    type: NodeType = NodeType.xor
    color: str | None = None  # "#rrggbb", None means the default color
    buttons: list[Button] = Field(default_factory=list)


class Edge(_DocumentModel):
    """a directed choice; ``to`` is None while the edge is dangling."""

    id: str
    from_: str = Field(alias="from")
    to: str | None = None
    button_id: str = Field(alias="buttonId")
    pending_x: float | None = Field(default=None, alias="pendingX")
    pending_y: float | None = Field(default=None, alias="pendingY")

    @property
    def is_dangling(self) -> bool:
        return not (isinstance(self.to, str) and self.to.strip())


class GraphUi(_DocumentModel):
    """per-graph view state. ``active_path`` is derived, never authored."""

    selected_node_id: str | None = Field(default=None, alias="selectedNodeId")
    active_path: list[str] = Field(default_factory=list, alias="activePath")
    active_selections: dict[str, list[str]] = Field(
        default_factory=dict, alias="activeSelections"
    )


class Graph(_DocumentModel):
    """the full graph document. ``nodes[0]`` is the traversal root."""

    id: str
    name: str
    version: int = GRAPH_VERSION
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    ui: GraphUi = Field(default_factory=GraphUi)

    @property
    def root(self) -> Node | None:
        return self.nodes[0] if self.nodes else None

    def find_node(self, node_id: str | None) -> Node | None:
        return next((node for node in self.nodes if node.id == node_id), None)

    def find_edge(self, edge_id: str | None) -> Edge | None:
        return next((edge for edge in self.edges if edge.id == edge_id), None)

    def find_button(self, edge: Edge) -> Button | None:
        source = self.find_node(edge.from_)
        if source is None:
            return None
        return next((b for b in source.buttons if b.id == edge.button_id), None)

    def outgoing(self, node_id: str) -> list[Edge]:
        return [edge for edge in self.edges if edge.from_ == node_id]

    def to_document(self) -> dict[str, Any]:
        """dump to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


class GraphSummary(BaseModel):
    """a row in the graph list."""

    id: str
    name: str
    updated_at: str
