"""Graph store: owns the current graph and applies edits to it.

Every mutating method leaves the graph consistent before it returns, so
callers never observe a half-applied edit. Saving is explicit.

Usage:
    from choicegraph import GraphStore, InMemoryGraphStorage

    store = GraphStore(InMemoryGraphStorage())
    graph = store.create_graph("Quest")
    edge = store.add_choice(graph.root.id, "Go north")
    target = store.add_node(400, 120, "North gate")
    store.connect_choice(edge.id, target.id)
    store.toggle_selection(edge.id)
    store.save()
"""

import copy
import logging
import math
from typing import Any

from choicegraph.adapters.storage import GraphStorage
from choicegraph.engine.active_path import collect_end_nodes
from choicegraph.engine.consistency import enforce_consistency
from choicegraph.engine.normalizer import decode_graph, make_root_node, normalize
from choicegraph.engine.selection import clear_selections, toggle_selection
from choicegraph.errors import (
    GraphEditError,
    GraphValidationError,
    NoCurrentGraph,
    UnknownEntityError,
)
from choicegraph.models.graph_document import (
    DEFAULT_CHOICE_TEXT,
    DEFAULT_GRAPH_NAME,
    GRAPH_VERSION,
    UNTITLED_GRAPH_NAME,
    Button,
    Edge,
    Graph,
    GraphSummary,
    Node,
    NodeType,
)
from choicegraph.models.selection import EditorState, PendingChoice, SelectionResult
from choicegraph.utils.identifiers import (
    GRAPH_KIND,
    generate_button_id,
    generate_edge_id,
    generate_node_id,
    generate_unique_id,
    utc_timestamp,
)
from choicegraph.utils.values import normalize_hex_color

logger = logging.getLogger(__name__)

NEW_NODE_TEXT = "New Node"
UNTITLED_NODE_TEXT = "Untitled Node"

# dangling endpoint placement for new choices
CHOICE_STEP_X = 250
CHOICE_STEP_Y = 90
CHOICE_OFFSET_Y = 18


class GraphStore:
    """Holds one current graph plus the editing session around it."""

    def __init__(self, storage: GraphStorage) -> None:
        self.storage = storage
        self.current: Graph | None = None
        self.editor = EditorState()
        self.summaries: list[GraphSummary] = []

    def __repr__(self) -> str:
        current = self.current.id if self.current else None
        return f"GraphStore(current={current!r}, graphs={len(self.summaries)})"

    # --- graph lifecycle ---

    def refresh_summaries(self) -> list[str]:
        """Reload the graph list from storage.

        Returns:
            warnings for stored documents that could not be decoded.
        """
        warnings = []
        summaries = []
        for document in self.storage.list_documents():
            label = str(document.get("id", "graph")) if isinstance(document, dict) else "graph"
            try:
                graph = normalize(document, label)
            except GraphValidationError as exc:
                logger.warning("skipping stored graph: %s", exc)
                warnings.append(str(exc))
                continue
            summaries.append(self._summary(graph))
        self.summaries = summaries
        self._sort_summaries()
        return warnings

    def create_graph(self, name: str | None = None) -> Graph:
        """Create, persist and load a graph holding a single start node."""
        created_at = utc_timestamp()
        root = make_root_node()
        graph = Graph(
            id=self._new_graph_id(),
            name=(name or "").strip() or DEFAULT_GRAPH_NAME,
            created_at=created_at,
            updated_at=created_at,
            nodes=[root],
        )
        graph.ui.selected_node_id = root.id
        self._activate(graph)
        self.save()
        logger.info("created graph %s (%s)", graph.id, graph.name)
        return graph

    def load(self, graph_id: str) -> Graph:
        document = self.storage.read(graph_id)
        if document is None:
            raise UnknownEntityError(f"graph not found: {graph_id}")
        graph = normalize(document, graph_id)
        self._activate(graph)
        logger.info("loaded graph %s (%s)", graph.id, graph.name)
        return graph

    def import_document(self, raw: Any, source_label: str = "import") -> tuple[Graph, int]:
        """Decode, persist and load an external document.

        The imported graph gets a new id if its id is already stored.

        Returns:
            the loaded graph and the number of records skipped while decoding.

        Raises:
            GraphValidationError: if the document root is unusable.
        """
        result = decode_graph(raw, source_label)
        graph = result.graph
        if self._graph_id_taken(graph.id):
            graph.id = self._new_graph_id()
        self._activate(graph)
        self.save()
        if result.skipped:
            logger.info("imported %s with %d skipped record(s)", source_label, result.skipped)
        return graph, result.skipped

    def save(self) -> Graph:
        """Stamp, repair and write the current graph."""
        graph = self._require_graph()
        graph.updated_at = utc_timestamp()
        graph.version = GRAPH_VERSION
        enforce_consistency(graph, self.editor)
        self.storage.write(graph.id, graph.to_document())
        self._upsert_summary(graph)
        return graph

    def rename(self, name: str) -> Graph:
        graph = self._require_graph()
        graph.name = (name or "").strip() or UNTITLED_GRAPH_NAME
        return self.save()

    def duplicate(self, name: str | None = None) -> Graph:
        """Copy the current graph under a new id and load the copy."""
        source = self._require_graph()
        default_name = f"{source.name} Copy"
        created_at = utc_timestamp()

        payload = copy.deepcopy(source.to_document())
        payload["id"] = self._new_graph_id()
        payload["name"] = (name or "").strip() or default_name
        payload["version"] = GRAPH_VERSION
        payload["createdAt"] = created_at
        payload["updatedAt"] = created_at

        graph = normalize(payload, "duplicate graph")
        self._activate(graph)
        self.save()
        logger.info("duplicated graph %s as %s", source.id, graph.id)
        return graph

    def delete_current(self) -> Graph:
        """Delete the current graph and load the most recent remaining one.

        A fresh graph is created when nothing else is stored.
        """
        graph = self._require_graph()
        self.storage.delete(graph.id)
        self.summaries = [s for s in self.summaries if s.id != graph.id]
        self.current = None
        logger.info("deleted graph %s", graph.id)

        if self.summaries:
            return self.load(self.summaries[0].id)
        return self.create_graph(DEFAULT_GRAPH_NAME)

    def export_document(self) -> dict[str, Any]:
        graph = self._require_graph()
        enforce_consistency(graph, self.editor)
        return graph.to_document()

    # --- node edits ---

    def add_node(self, x: float, y: float, text: str | None = None) -> Node:
        """Add a node and select it; completes a pending choice if one is open."""
        graph = self._require_graph()
        node = Node(
            id=generate_node_id(),
            x=round(x),
            y=round(y),
            text=(text or "").strip() or NEW_NODE_TEXT,
            type=NodeType.xor,
        )
        graph.nodes.append(node)
        graph.ui.selected_node_id = node.id
        self.editor.selected_edge_id = None
        enforce_consistency(graph, self.editor)

        if self.editor.pending_choice is not None:
            self.complete_pending_choice(node.id)
        return node

    def select_node(self, node_id: str | None) -> None:
        graph = self._require_graph()
        if node_id is not None:
            self._require_node(node_id)
        graph.ui.selected_node_id = node_id

    def set_node_text(self, node_id: str, text: str) -> Node:
        node = self._require_node(node_id)
        node.text = (text or "").strip() or UNTITLED_NODE_TEXT
        enforce_consistency(self.current, self.editor)
        return node

    def set_node_color(self, node_id: str, color: str | None) -> Node:
        """Set a node color; anything that is not a hex color resets it."""
        node = self._require_node(node_id)
        node.color = normalize_hex_color(color)
        enforce_consistency(self.current, self.editor)
        return node

    def move_node(self, node_id: str, x: float, y: float) -> Node:
        node = self._require_node(node_id)
        node.x = round(x)
        node.y = round(y)
        enforce_consistency(self.current, self.editor)
        return node

    def toggle_node_type(self, node_id: str) -> Node:
        """Flip XOR/OR. Turning OR into XOR keeps only the first choice."""
        node = self._require_node(node_id)
        node.type = NodeType.or_ if node.type == NodeType.xor else NodeType.xor
        enforce_consistency(self.current, self.editor)
        return node

    def delete_node(self, node_id: str) -> None:
        """Delete a node along with every edge touching it."""
        graph = self.current
        node = self._require_node(node_id)
        doomed = [e for e in graph.edges if e.from_ == node.id or e.to == node.id]
        for edge in doomed:
            source = graph.find_node(edge.from_)
            if source is not None:
                source.buttons = [b for b in source.buttons if b.id != edge.button_id]
        doomed_ids = {edge.id for edge in doomed}
        graph.edges = [e for e in graph.edges if e.id not in doomed_ids]
        graph.nodes = [n for n in graph.nodes if n.id != node.id]
        graph.ui.selected_node_id = None
        self.editor.selected_edge_id = None
        enforce_consistency(graph, self.editor)

    # --- choice edits ---

    def add_choice(self, source_node_id: str, text: str | None = None) -> Edge:
        """Create a dangling choice on a node.

        The dangling endpoint is staggered to the right of the source,
        alternating below and above for each further choice.
        """
        graph = self.current
        source = self._require_node(source_node_id)
        outgoing_count = len(graph.outgoing(source.id))
        offset_y = 0
        if outgoing_count > 0:
            magnitude = math.ceil(outgoing_count / 2) * CHOICE_STEP_Y
            offset_y = magnitude if outgoing_count % 2 == 1 else -magnitude

        edge = self._append_choice(source, text, target_id=None)
        edge.pending_x = round(source.x + CHOICE_STEP_X)
        edge.pending_y = round(source.y + CHOICE_OFFSET_Y + offset_y)

        self.editor.pending_choice = None
        self.editor.selected_edge_id = edge.id
        graph.ui.selected_node_id = None
        enforce_consistency(graph, self.editor)
        return edge

    def connect_choice(self, edge_id: str, target_node_id: str) -> Edge:
        """Attach a dangling choice to a target node."""
        graph = self._require_graph()
        edge = self._require_edge(edge_id)
        target = self._require_node(target_node_id)
        if not edge.is_dangling:
            raise GraphEditError(f"choice {edge_id} is already connected")
        if edge.from_ == target.id:
            raise GraphEditError("a choice cannot connect a node to itself")

        edge.to = target.id
        edge.pending_x = None
        edge.pending_y = None
        button = graph.find_button(edge)
        if button is not None:
            button.to = target.id

        graph.ui.selected_node_id = target.id
        self.editor.selected_edge_id = None
        enforce_consistency(graph, self.editor)
        return edge

    def begin_pending_choice(self, source_node_id: str, text: str | None = None) -> PendingChoice:
        """Start a choice whose target is picked (or created) next."""
        self._require_node(source_node_id)
        pending = PendingChoice(
            source_node_id=source_node_id,
            button_text=(text or "").strip() or DEFAULT_CHOICE_TEXT,
        )
        self.editor.pending_choice = pending
        return pending

    def cancel_pending_choice(self) -> None:
        self.editor.pending_choice = None

    def complete_pending_choice(self, target_node_id: str) -> Edge | None:
        """Create the pending choice as an edge to ``target_node_id``.

        Returns None (and drops the pending choice) if either end is gone.
        """
        graph = self._require_graph()
        pending = self.editor.pending_choice
        if pending is None:
            raise GraphEditError("no pending choice")
        self.editor.pending_choice = None

        source = graph.find_node(pending.source_node_id)
        target = graph.find_node(target_node_id)
        if source is None or target is None:
            return None

        edge = self._append_choice(source, pending.button_text, target_id=target.id)
        self.editor.selected_edge_id = edge.id
        graph.ui.selected_node_id = None
        enforce_consistency(graph, self.editor)
        return edge

    def set_choice_text(self, edge_id: str, text: str) -> Button:
        graph = self._require_graph()
        edge = self._require_edge(edge_id)
        enforce_consistency(graph, self.editor)
        button = graph.find_button(edge)
        button.text = (text or "").strip() or DEFAULT_CHOICE_TEXT
        return button

    def select_edge(self, edge_id: str | None) -> None:
        if edge_id is not None:
            self._require_edge(edge_id)
        self.editor.selected_edge_id = edge_id

    def delete_edge(self, edge_id: str) -> None:
        graph = self._require_graph()
        edge = self._require_edge(edge_id)
        source = graph.find_node(edge.from_)
        if source is not None:
            source.buttons = [b for b in source.buttons if b.id != edge.button_id]
        graph.edges = [e for e in graph.edges if e.id != edge.id]
        self.editor.selected_edge_id = None
        enforce_consistency(graph, self.editor)

    # --- playing ---

    def toggle_selection(self, edge_id: str) -> SelectionResult:
        return toggle_selection(self._require_graph(), edge_id, self.editor)

    def clear_active_path(self) -> Graph:
        return clear_selections(self._require_graph(), self.editor)

    def active_path(self) -> list[str]:
        return list(self._require_graph().ui.active_path)

    def end_nodes(self) -> list[Node]:
        return collect_end_nodes(self._require_graph())

    # --- helpers ---

    def _activate(self, graph: Graph) -> None:
        self.current = graph
        self.editor.reset()
        enforce_consistency(graph, self.editor)

    def _append_choice(self, source: Node, text: str | None, target_id: str | None) -> Edge:
        button = Button(
            id=generate_button_id(),
            text=(text or "").strip() or DEFAULT_CHOICE_TEXT,
            to=target_id,
        )
        edge = Edge(id=generate_edge_id(), from_=source.id, to=target_id, button_id=button.id)
        source.buttons.append(button)
        self.current.edges.append(edge)
        return edge

    def _require_graph(self) -> Graph:
        if self.current is None:
            raise NoCurrentGraph("no graph is loaded")
        return self.current

    def _require_node(self, node_id: str) -> Node:
        node = self._require_graph().find_node(node_id)
        if node is None:
            raise UnknownEntityError(f"node not found: {node_id}")
        return node

    def _require_edge(self, edge_id: str) -> Edge:
        edge = self._require_graph().find_edge(edge_id)
        if edge is None:
            raise UnknownEntityError(f"choice not found: {edge_id}")
        return edge

    def _graph_id_taken(self, graph_id: str) -> bool:
        return any(s.id == graph_id for s in self.summaries) or self.storage.exists(graph_id)

    def _new_graph_id(self) -> str:
        return generate_unique_id(GRAPH_KIND, self._graph_id_taken)

    def _summary(self, graph: Graph) -> GraphSummary:
        return GraphSummary(id=graph.id, name=graph.name, updated_at=graph.updated_at)

    def _upsert_summary(self, graph: Graph) -> None:
        summary = self._summary(graph)
        self.summaries = [s for s in self.summaries if s.id != graph.id] + [summary]
        self._sort_summaries()

    def _sort_summaries(self) -> None:
        self.summaries.sort(key=lambda s: s.updated_at, reverse=True)
