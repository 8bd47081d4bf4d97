"""Derive the active path from the current selections.

The walk starts at the root (first node) and only follows selected edges,
so the branching factor is set by the selection map, not by out-degree.
Cycles are tolerated: a node that is already an ancestor on the current
branch is recorded again but not expanded. Ancestors are tracked per
branch, so a node reached through two disjoint branches is expanded twice.
"""

from collections.abc import Iterable, Mapping, Sequence

from choicegraph.models.graph_document import Edge, Graph, Node, NodeType, normalize_node_type


def derive_path(
    nodes: Sequence[Node],
    edges: Iterable[Edge],
    selections: Mapping[str, Sequence[str]],
) -> list[str]:
    """Return the ordered node/edge id sequence reachable from the root.

    Node ids and edge ids alternate along each branch; sibling branches of
    an OR node follow each other in selection-insertion order.
    """
    if not nodes:
        return []

    node_by_id = {node.id: node for node in nodes}
    edge_by_id = {edge.id: edge for edge in edges}
    path: list[str] = []

    # entries: ("node", id, ancestors) or ("edge", id, None)
    stack: list[tuple[str, str, frozenset[str] | None]] = [
        ("node", nodes[0].id, frozenset())
    ]
    while stack:
        kind, entry_id, ancestors = stack.pop()
        if kind == "edge":
            path.append(entry_id)
            continue

        node = node_by_id.get(entry_id)
        if node is None:
            continue
        path.append(entry_id)
        if entry_id in ancestors:
            continue

        selected = list(selections.get(entry_id) or [])
        if normalize_node_type(node.type) == NodeType.xor:
            selected = selected[:1]

        branch = ancestors | {entry_id}
        children: list[tuple[str, str]] = []
        for edge_id in selected:
            edge = edge_by_id.get(edge_id)
            if edge is None or edge.from_ != entry_id or edge.to not in node_by_id:
                continue
            children.append((edge.id, edge.to))

        # push in reverse so the first selection is walked first
        for edge_id, target_id in reversed(children):
            stack.append(("node", target_id, branch))
            stack.append(("edge", edge_id, None))

    return path


def derive_active_path(graph: Graph) -> list[str]:
    return derive_path(graph.nodes, graph.edges, graph.ui.active_selections)


def collect_end_nodes(graph: Graph) -> list[Node]:
    """Active nodes that have no selected outgoing edge leading to a real node.

    Order follows first appearance on the active path. With an empty path
    the root is the trivial end node.
    """
    node_by_id = {node.id: node for node in graph.nodes}
    edge_by_id = {edge.id: edge for edge in graph.edges}
    selections = graph.ui.active_selections

    active_ids: list[str] = []
    for entry in graph.ui.active_path:
        if entry in node_by_id and entry not in active_ids:
            active_ids.append(entry)
    if not active_ids and graph.nodes:
        active_ids.append(graph.nodes[0].id)

    end_nodes = []
    for node_id in active_ids:
        has_active_outgoing = False
        for edge_id in selections.get(node_id) or []:
            edge = edge_by_id.get(edge_id)
            if edge is not None and edge.from_ == node_id and edge.to in node_by_id:
                has_active_outgoing = True
                break
        if not has_active_outgoing:
            end_nodes.append(node_by_id[node_id])
    return end_nodes
