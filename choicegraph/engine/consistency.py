"""Repair pass that restores graph invariants after any mutation.

``enforce_consistency`` runs after every edit and once after import. It is
idempotent and never raises; every correction it makes is silent.

After a pass:
  * node and edge ids are unique, later duplicates get fresh ids,
  * every edge's ``from`` names a node and ``to`` is a node id or None,
  * each node's buttons mirror its outgoing edges one-to-one,
  * selections only name resolvable edges on visited nodes, XOR nodes
    hold at most one,
  * ``ui.active_path`` equals the derived path.
"""

import logging
from collections.abc import Mapping, Sequence

from choicegraph.engine.active_path import derive_active_path
from choicegraph.models.graph_document import (
    DEFAULT_CHOICE_TEXT,
    Button,
    Graph,
    NodeType,
    normalize_node_type,
)
from choicegraph.models.selection import EditorState
from choicegraph.utils.identifiers import (
    BUTTON_KIND,
    EDGE_KIND,
    NODE_KIND,
    generate_unique_id,
)
from choicegraph.utils.values import finite_or_none, is_non_blank_str, normalize_hex_color

logger = logging.getLogger(__name__)


def enforce_consistency(graph: Graph, editor: EditorState | None = None) -> Graph:
    """Repair ``graph`` in place and return it."""
    _sanitize_edges(graph)
    _mirror_buttons(graph)
    _clear_stale_references(graph, editor)

    basis = _selection_basis(graph)
    graph.ui.active_selections = _normalize_selections(graph, basis)
    _derive_and_prune(graph)

    if editor is not None:
        _clear_stale_choices(graph, editor)
    return graph


def sync_selections(graph: Graph, editor: EditorState | None = None) -> Graph:
    """Re-validate selections and re-derive the path.

    Unlike ``enforce_consistency`` the selection map is always taken as is,
    even when empty, so a cleared choice is never restored from the old path.
    """
    graph.ui.active_selections = _normalize_selections(graph, graph.ui.active_selections)
    _derive_and_prune(graph)
    if editor is not None:
        _clear_stale_choices(graph, editor)
    return graph


def _sanitize_edges(graph: Graph) -> None:
    node_ids: set[str] = set()
    for node in graph.nodes:
        if node.id in node_ids:
            stale = node.id
            node.id = generate_unique_id(NODE_KIND, node_ids.__contains__)
            logger.debug("duplicate node id %r re-keyed as %s", stale, node.id)
        node_ids.add(node.id)

    kept = []
    edge_ids: set[str] = set()
    for edge in graph.edges:
        if edge.from_ not in node_ids:
            logger.debug("dropping edge %s: unknown source %r", edge.id, edge.from_)
            continue
        if is_non_blank_str(edge.to):
            edge.to = edge.to.strip()
            if edge.to not in node_ids:
                logger.debug("dropping edge %s: unknown target %r", edge.id, edge.to)
                continue
            edge.pending_x = None
            edge.pending_y = None
        else:
            edge.to = None
            edge.pending_x = finite_or_none(edge.pending_x)
            edge.pending_y = finite_or_none(edge.pending_y)
        if edge.id in edge_ids:
            stale = edge.id
            edge.id = generate_unique_id(EDGE_KIND, edge_ids.__contains__)
            logger.debug("duplicate edge id %r re-keyed as %s", stale, edge.id)
        edge_ids.add(edge.id)
        kept.append(edge)
    graph.edges = kept


def _mirror_buttons(graph: Graph) -> None:
    outgoing_by_node: dict[str, list] = {}
    for edge in graph.edges:
        outgoing_by_node.setdefault(edge.from_, []).append(edge)

    for node in graph.nodes:
        node.type = normalize_node_type(node.type)
        node.color = normalize_hex_color(node.color)

        outgoing = outgoing_by_node.get(node.id, [])
        button_by_id: dict[str, Button] = {}
        for button in node.buttons:
            button_by_id.setdefault(button.id, button)
        claimed: set[str] = set()
        for edge in outgoing:
            # one edge per button; a later edge sharing an id gets its own button
            if edge.button_id in claimed:
                edge.button_id = generate_unique_id(
                    BUTTON_KIND, lambda c: c in claimed or c in button_by_id
                )
            claimed.add(edge.button_id)
            button = button_by_id.get(edge.button_id)
            if button is None:
                button = Button(id=edge.button_id, text=DEFAULT_CHOICE_TEXT, to=edge.to)
                node.buttons.append(button)
                button_by_id[button.id] = button
            button.to = edge.to
            if not is_non_blank_str(button.text):
                button.text = DEFAULT_CHOICE_TEXT

        backed = {edge.button_id for edge in outgoing}
        # one button per id; a duplicate id keeps its first entry
        seen: set[str] = set()
        buttons = []
        for button in node.buttons:
            if button.id in backed and button.id not in seen:
                seen.add(button.id)
                buttons.append(button)
        node.buttons = buttons


def _clear_stale_references(graph: Graph, editor: EditorState | None) -> None:
    node_ids = {node.id for node in graph.nodes}
    if graph.ui.selected_node_id not in node_ids:
        graph.ui.selected_node_id = None

    if editor is None:
        return
    edge_ids = {edge.id for edge in graph.edges}
    if editor.selected_edge_id is not None and editor.selected_edge_id not in edge_ids:
        editor.selected_edge_id = None
    pending = editor.pending_choice
    if pending is not None and pending.source_node_id not in node_ids:
        editor.pending_choice = None


def _selection_basis(graph: Graph) -> Mapping[str, Sequence[str]]:
    """Explicit selections if any entry is well formed, else read off the path."""
    current = graph.ui.active_selections or {}
    if any(isinstance(value, (list, tuple)) for value in current.values()):
        return current

    edge_by_id = {edge.id: edge for edge in graph.edges}
    derived: dict[str, list[str]] = {}
    for entry in graph.ui.active_path:
        edge = edge_by_id.get(entry)
        if edge is None:
            continue
        chosen = derived.setdefault(edge.from_, [])
        if edge.id not in chosen:
            chosen.append(edge.id)
    return derived


def _normalize_selections(
    graph: Graph, basis: Mapping[str, Sequence[str]]
) -> dict[str, list[str]]:
    node_ids = {node.id for node in graph.nodes}
    valid_by_node: dict[str, set[str]] = {}
    for edge in graph.edges:
        if edge.to in node_ids:
            valid_by_node.setdefault(edge.from_, set()).add(edge.id)

    normalized: dict[str, list[str]] = {}
    for node in graph.nodes:
        raw = basis.get(node.id)
        if not isinstance(raw, (list, tuple)):
            continue
        valid = valid_by_node.get(node.id, set())
        unique: list[str] = []
        for edge_id in raw:
            if isinstance(edge_id, str) and edge_id in valid and edge_id not in unique:
                unique.append(edge_id)
        if normalize_node_type(node.type) == NodeType.xor:
            unique = unique[:1]
        if unique:
            normalized[node.id] = unique
    return normalized


def _derive_and_prune(graph: Graph) -> None:
    path = derive_active_path(graph)
    graph.ui.active_path = path

    node_ids = {node.id for node in graph.nodes}
    visited = {entry for entry in path if entry in node_ids}
    traversed = {entry for entry in path if entry not in node_ids}

    pruned: dict[str, list[str]] = {}
    for node_id, edge_ids in graph.ui.active_selections.items():
        if node_id not in visited:
            continue
        kept = [edge_id for edge_id in edge_ids if edge_id in traversed]
        if kept:
            pruned[node_id] = kept
    graph.ui.active_selections = pruned


def _clear_stale_choices(graph: Graph, editor: EditorState) -> None:
    path = set(graph.ui.active_path)
    if editor.last_chosen_edge_id is not None and editor.last_chosen_edge_id not in path:
        editor.last_chosen_edge_id = None
    if editor.last_chosen_node_id is not None and editor.last_chosen_node_id not in path:
        editor.last_chosen_node_id = None
