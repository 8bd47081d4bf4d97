"""Core data models for choicegraph."""

from choicegraph.models.graph_document import (
    DEFAULT_CHOICE_TEXT,
    GRAPH_VERSION,
    Button,
    Edge,
    Graph,
    GraphSummary,
    GraphUi,
    Node,
    NodeType,
    normalize_node_type,
)
from choicegraph.models.selection import (
    EditorState,
    PendingChoice,
    SelectionResult,
)

__all__ = [
    # Graph documents
    "DEFAULT_CHOICE_TEXT",
    "GRAPH_VERSION",
    "Button",
    "Edge",
    "Graph",
    "GraphSummary",
    "GraphUi",
    "Node",
    "NodeType",
    "normalize_node_type",
    # Selection
    "EditorState",
    "PendingChoice",
    "SelectionResult",
]
