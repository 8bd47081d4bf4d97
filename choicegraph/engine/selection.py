"""Toggle choices on a graph, honoring OR/XOR branch semantics."""

from choicegraph.engine.consistency import sync_selections
from choicegraph.errors import SelectionRejected
from choicegraph.models.graph_document import Graph, NodeType, normalize_node_type
from choicegraph.models.selection import EditorState, SelectionResult


def toggle_selection(
    graph: Graph, edge_id: str, editor: EditorState | None = None
) -> SelectionResult:
    """Select or deselect ``edge_id`` on its source node.

    OR nodes add or remove the edge from their selection. XOR nodes replace
    their selection with the edge, or clear it when the edge was the sole
    selection.

    Raises:
        SelectionRejected: if the edge is unknown or has no resolvable
            target. Nothing is mutated in that case.
    """
    edge = graph.find_edge(edge_id)
    if edge is None:
        raise SelectionRejected(edge_id, "unknown edge")
    if edge.is_dangling or graph.find_node(edge.to) is None:
        raise SelectionRejected(edge_id, "edge is not connected to a node")
    source = graph.find_node(edge.from_)
    if source is None:
        raise SelectionRejected(edge_id, "source node no longer exists")

    branch_type = normalize_node_type(source.type)
    selections = graph.ui.active_selections
    current: list[str] = []
    for selected_id in selections.get(source.id) or []:
        if isinstance(selected_id, str) and selected_id and selected_id not in current:
            current.append(selected_id)

    if branch_type == NodeType.or_:
        if edge.id in current:
            current.remove(edge.id)
            selected = False
        else:
            current.append(edge.id)
            selected = True
    elif current == [edge.id]:
        current = []
        selected = False
    else:
        current = [edge.id]
        selected = True

    if current:
        selections[source.id] = current
    else:
        selections.pop(source.id, None)

    if editor is not None:
        if selected:
            editor.last_chosen_edge_id = edge.id
            editor.last_chosen_node_id = edge.to
        else:
            if editor.last_chosen_edge_id == edge.id:
                editor.last_chosen_edge_id = None
            if editor.last_chosen_node_id == edge.to:
                editor.last_chosen_node_id = None

    sync_selections(graph, editor)
    return SelectionResult(
        edge_id=edge.id,
        source_node_id=source.id,
        target_node_id=edge.to,
        branch_type=branch_type,
        selected=selected,
    )


def clear_selections(graph: Graph, editor: EditorState | None = None) -> Graph:
    """Drop every choice; the active path collapses to the root."""
    graph.ui.active_selections = {}
    graph.ui.active_path = []
    if editor is not None:
        editor.last_chosen_edge_id = None
        editor.last_chosen_node_id = None
    return sync_selections(graph, editor)
