"""choicegraph - branching choice graphs with OR/XOR selections."""

from choicegraph.adapters.storage import GraphStorage, InMemoryGraphStorage
from choicegraph.engine import (
    collect_end_nodes,
    decode_graph,
    derive_active_path,
    derive_path,
    enforce_consistency,
    normalize,
    toggle_selection,
)
from choicegraph.errors import (
    GraphEditError,
    GraphValidationError,
    NoCurrentGraph,
    SelectionRejected,
    UnknownEntityError,
)
from choicegraph.models.graph_document import (
    GRAPH_VERSION,
    Button,
    Edge,
    Graph,
    GraphSummary,
    Node,
    NodeType,
)
from choicegraph.models.selection import EditorState, SelectionResult
from choicegraph.store import GraphStore

__all__ = [
    # Documents
    "GRAPH_VERSION",
    "Button",
    "Edge",
    "Graph",
    "GraphSummary",
    "Node",
    "NodeType",
    "EditorState",
    "SelectionResult",
    # Engine
    "collect_end_nodes",
    "decode_graph",
    "derive_active_path",
    "derive_path",
    "enforce_consistency",
    "normalize",
    "toggle_selection",
    # Errors
    "GraphEditError",
    "GraphValidationError",
    "NoCurrentGraph",
    "SelectionRejected",
    "UnknownEntityError",
    # High-level APIs
    "GraphStorage",
    "InMemoryGraphStorage",
    "GraphStore",
]
