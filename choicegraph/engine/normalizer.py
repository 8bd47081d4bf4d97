"""Decode untrusted graph documents into consistent ``Graph`` models.

The decoder is lenient per record and strict at the root: a malformed root,
an unsupported version or non-list ``nodes``/``edges`` abort the import
with ``GraphValidationError``. Malformed individual records are dropped and
counted instead.

Duplicate node ids: the first occurrence keeps the id, later duplicates get
a fresh one, so edges naming that id always bind to the first node.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from choicegraph.engine.consistency import enforce_consistency
from choicegraph.errors import GraphValidationError
from choicegraph.models.graph_document import (
    DEFAULT_CHOICE_TEXT,
    GRAPH_VERSION,
    UNTITLED_GRAPH_NAME,
    Button,
    Edge,
    Graph,
    GraphUi,
    Node,
    NodeType,
    normalize_node_type,
)
from choicegraph.utils.identifiers import (
    BUTTON_KIND,
    EDGE_KIND,
    NODE_KIND,
    generate_graph_id,
    generate_id,
    generate_node_id,
    utc_timestamp,
)
from choicegraph.utils.values import (
    finite_or_none,
    is_finite_number,
    is_non_blank_str,
    normalize_hex_color,
)

logger = logging.getLogger(__name__)

FALLBACK_X = 140
FALLBACK_Y = 100
FALLBACK_STEP = 30

ROOT_X = 220
ROOT_Y = 120
ROOT_TEXT = "Start"


@dataclass
class DecodeResult:
    """A decoded graph plus the records that had to be dropped."""

    graph: Graph
    skipped_records: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.skipped_records)


def make_root_node() -> Node:
    return Node(id=generate_node_id(), x=ROOT_X, y=ROOT_Y, text=ROOT_TEXT, type=NodeType.xor)


def normalize(raw: Any, source_label: str = "graph") -> Graph:
    """Decode ``raw`` into a consistent graph.

    Raises:
        GraphValidationError: if the document root is unusable.
    """
    return decode_graph(raw, source_label).graph


def decode_graph(raw: Any, source_label: str = "graph") -> DecodeResult:
    _check_root(raw, source_label)

    now = utc_timestamp()
    graph = Graph(
        id=raw["id"].strip() if is_non_blank_str(raw.get("id")) else generate_graph_id(),
        name=_decode_text(raw.get("name"), UNTITLED_GRAPH_NAME),
        version=GRAPH_VERSION,
        created_at=raw["createdAt"] if isinstance(raw.get("createdAt"), str) else now,
        updated_at=raw["updatedAt"] if isinstance(raw.get("updatedAt"), str) else now,
        ui=_decode_ui(raw.get("ui")),
    )
    skipped: list[str] = []

    node_ids: set[str] = set()
    for index, raw_node in enumerate(raw["nodes"]):
        if not isinstance(raw_node, dict):
            skipped.append(f"nodes[{index}]: not an object")
            continue
        graph.nodes.append(_decode_node(raw_node, index, node_ids, skipped))

    if not graph.nodes:
        graph.nodes.append(make_root_node())

    edge_ids: set[str] = set()
    button_ids: dict[str, set[str]] = {}
    for index, raw_edge in enumerate(raw["edges"]):
        edge = _decode_edge(raw_edge, node_ids, edge_ids, button_ids)
        if isinstance(edge, str):
            skipped.append(f"edges[{index}]: {edge}")
            continue
        graph.edges.append(edge)

    if skipped:
        logger.debug("%s: skipped %d record(s): %s", source_label, len(skipped), skipped)

    enforce_consistency(graph)
    return DecodeResult(graph=graph, skipped_records=skipped)


def _check_root(raw: Any, source_label: str) -> None:
    if not isinstance(raw, dict):
        raise GraphValidationError(source_label, "root must be an object.")
    version = raw.get("version")
    if is_finite_number(version) and version > GRAPH_VERSION:
        raise GraphValidationError(source_label, f"unsupported graph version {version}.")
    if not isinstance(raw.get("nodes"), list):
        raise GraphValidationError(source_label, "nodes must be an array.")
    if not isinstance(raw.get("edges"), list):
        raise GraphValidationError(source_label, "edges must be an array.")


def _decode_id(value: Any, kind: str, taken: set[str]) -> str:
    """Keep a non-blank id unless it is already taken in this collection."""
    candidate = value.strip() if is_non_blank_str(value) else generate_id(kind)
    while candidate in taken:
        candidate = generate_id(kind)
    taken.add(candidate)
    return candidate


def _decode_text(value: Any, default: str) -> str:
    return value.strip() if is_non_blank_str(value) else default


def _decode_coordinate(value: Any, fallback: float) -> float:
    return value if is_finite_number(value) else fallback


def _decode_node_type(value: Any) -> NodeType:
    return normalize_node_type(value)


def _decode_color(value: Any) -> str | None:
    return normalize_hex_color(value)


def _decode_target(value: Any) -> str | None:
    return value.strip() if is_non_blank_str(value) else None


def _decode_pending(value: Any) -> float | None:
    return finite_or_none(value)


def _decode_node(
    raw_node: dict, index: int, node_ids: set[str], skipped: list[str]
) -> Node:
    node_id = _decode_id(raw_node.get("id"), NODE_KIND, node_ids)

    buttons: list[Button] = []
    button_ids: set[str] = set()
    raw_buttons = raw_node.get("buttons")
    if isinstance(raw_buttons, list):
        for button_index, raw_button in enumerate(raw_buttons):
            if not isinstance(raw_button, dict):
                skipped.append(f"nodes[{index}].buttons[{button_index}]: not an object")
                continue
            buttons.append(
                Button(
                    id=_decode_id(raw_button.get("id"), BUTTON_KIND, button_ids),
                    text=_decode_text(raw_button.get("text"), DEFAULT_CHOICE_TEXT),
                    to=_decode_target(raw_button.get("to")),
                )
            )

    return Node(
        id=node_id,
        x=_decode_coordinate(raw_node.get("x"), FALLBACK_X + index * FALLBACK_STEP),
        y=_decode_coordinate(raw_node.get("y"), FALLBACK_Y + index * FALLBACK_STEP),
        text=_decode_text(raw_node.get("text"), f"Node {index + 1}"),
        type=_decode_node_type(raw_node.get("type")),
        color=_decode_color(raw_node.get("color")),
        buttons=buttons,
    )


def _decode_edge(
    raw_edge: Any,
    node_ids: set[str],
    edge_ids: set[str],
    button_ids: dict[str, set[str]],
) -> Edge | str:
    """Return the decoded edge, or the reason it was dropped.

    Button ids are unique per source node; a later edge reusing one gets a
    fresh id.
    """
    if not isinstance(raw_edge, dict):
        return "not an object"
    from_id = raw_edge.get("from")
    if not is_non_blank_str(from_id):
        return "missing 'from'"
    from_id = from_id.strip()
    if from_id not in node_ids:
        return f"unknown source node {from_id!r}"
    to_id = _decode_target(raw_edge.get("to"))
    if to_id is not None and to_id not in node_ids:
        return f"unknown target node {to_id!r}"

    button_id = _decode_id(
        raw_edge.get("buttonId"), BUTTON_KIND, button_ids.setdefault(from_id, set())
    )
    return Edge(
        id=_decode_id(raw_edge.get("id"), EDGE_KIND, edge_ids),
        from_=from_id,
        to=to_id,
        button_id=button_id,
        pending_x=_decode_pending(raw_edge.get("pendingX")),
        pending_y=_decode_pending(raw_edge.get("pendingY")),
    )


def _decode_ui(raw_ui: Any) -> GraphUi:
    if not isinstance(raw_ui, dict):
        return GraphUi()

    selected_node_id = raw_ui.get("selectedNodeId")
    raw_path = raw_ui.get("activePath")
    raw_selections = raw_ui.get("activeSelections")

    selections: dict[str, list[str]] = {}
    if isinstance(raw_selections, dict):
        for node_id, edge_ids in raw_selections.items():
            if isinstance(node_id, str) and isinstance(edge_ids, list):
                selections[node_id] = [e for e in edge_ids if isinstance(e, str)]

    return GraphUi(
        selected_node_id=selected_node_id if isinstance(selected_node_id, str) else None,
        active_path=[e for e in raw_path if isinstance(e, str)] if isinstance(raw_path, list) else [],
        active_selections=selections,
    )
