"""Tests for the consistency repair pass."""

from choicegraph.engine.consistency import enforce_consistency, sync_selections
from choicegraph.engine.normalizer import normalize
from choicegraph.models.graph_document import Button, Edge, Graph, Node, NodeType
from choicegraph.models.selection import EditorState, PendingChoice


def _chain():
    """S -> A -> C with both choices selected, plus a dangling choice on S."""
    return normalize(
        {
            "id": "g1",
            "name": "Chain",
            "nodes": [
                {"id": "S", "text": "Start", "type": "or"},
                {"id": "A", "text": "A"},
                {"id": "C", "text": "C"},
            ],
            "edges": [
                {"id": "e1", "from": "S", "to": "A", "buttonId": "b1"},
                {"id": "e2", "from": "A", "to": "C", "buttonId": "b2"},
                {"id": "d1", "from": "S", "to": None, "buttonId": "b3", "pendingX": 5, "pendingY": 6},
            ],
            "ui": {"activeSelections": {"S": ["e1"], "A": ["e2"]}},
        },
        "chain",
    )


def _assert_invariants(graph) -> None:
    node_ids = {node.id for node in graph.nodes}
    assert len(node_ids) == len(graph.nodes)
    assert len({edge.id for edge in graph.edges}) == len(graph.edges)
    for edge in graph.edges:
        assert edge.from_ in node_ids
        assert edge.to is None or edge.to in node_ids

    for node in graph.nodes:
        outgoing = sorted((e.button_id, e.to or "") for e in graph.edges if e.from_ == node.id)
        assert sorted((b.id, b.to or "") for b in node.buttons) == outgoing

    edge_by_id = {edge.id: edge for edge in graph.edges}
    for node_id, edge_ids in graph.ui.active_selections.items():
        node = graph.find_node(node_id)
        assert node is not None
        if node.type == NodeType.xor:
            assert len(edge_ids) <= 1
        for edge_id in edge_ids:
            assert edge_by_id[edge_id].from_ == node_id
            assert edge_by_id[edge_id].to in node_ids


class TestIdempotence:
    """Running the pass twice changes nothing the second time."""

    def test_enforce_twice(self):
        graph = _chain()
        once = enforce_consistency(graph).to_document()
        twice = enforce_consistency(graph).to_document()
        assert once == twice

    def test_enforce_after_corruption_twice(self):
        graph = _chain()
        graph.edges.append(Edge(id="bad", from_="ghost", to="A", button_id="bx"))
        graph.nodes[0].buttons.append(Button(id="orphan", text="x"))
        once = enforce_consistency(graph).to_document()
        assert enforce_consistency(graph).to_document() == once
        _assert_invariants(graph)


class TestEdgeSanitation:
    """Edges must reference existing nodes."""

    def test_drops_edge_with_unknown_source(self):
        graph = _chain()
        graph.edges.append(Edge(id="bad", from_="ghost", to="A", button_id="bx"))
        enforce_consistency(graph)
        assert graph.find_edge("bad") is None

    def test_drops_edge_with_unknown_target(self):
        graph = _chain()
        graph.edges.append(Edge(id="bad", from_="S", to="ghost", button_id="bx"))
        enforce_consistency(graph)
        assert graph.find_edge("bad") is None
        assert all(b.id != "bx" for b in graph.nodes[0].buttons)

    def test_blank_target_becomes_dangling(self):
        graph = _chain()
        graph.edges.append(Edge(id="blank", from_="S", to="   ", button_id="bx", pending_x=float("inf")))
        enforce_consistency(graph)
        edge = graph.find_edge("blank")
        assert edge.to is None
        assert edge.pending_x is None

    def test_dangling_edge_keeps_pending_point(self):
        graph = _chain()
        edge = graph.find_edge("d1")
        assert (edge.pending_x, edge.pending_y) == (5, 6)

    def test_duplicate_edge_ids_are_rekeyed(self):
        """The first edge keeps a repeated id, later ones get fresh ids."""
        graph = _chain()
        graph.edges.append(Edge(id="e1", from_="S", to="C", button_id="b9"))
        enforce_consistency(graph)

        assert graph.find_edge("e1").to == "A"
        rekeyed = graph.edges[-1]
        assert rekeyed.id.startswith("e_")
        assert rekeyed.to == "C"
        _assert_invariants(graph)

    def test_duplicate_node_ids_are_rekeyed(self):
        """Edges naming a repeated node id stay bound to the first node."""
        graph = Graph(
            id="g1",
            name="Dupes",
            created_at="2024-01-01T00:00:00+00:00",
            updated_at="2024-01-01T00:00:00+00:00",
            nodes=[Node(id="S", text="Start"), Node(id="A", text="A"), Node(id="A", text="Other")],
            edges=[Edge(id="e1", from_="S", to="A", button_id="b1")],
        )
        enforce_consistency(graph)

        assert [n.id for n in graph.nodes][:2] == ["S", "A"]
        assert graph.nodes[2].id.startswith("n_")
        assert graph.nodes[2].text == "Other"
        assert graph.find_node("A").text == "A"
        _assert_invariants(graph)


class TestButtonMirror:
    """Buttons follow their edges."""

    def test_retargeted_edge_updates_button(self):
        graph = _chain()
        graph.find_edge("d1").to = "C"
        enforce_consistency(graph)
        button = graph.find_button(graph.find_edge("d1"))
        assert button.to == "C"
        assert graph.find_edge("d1").pending_x is None
        _assert_invariants(graph)

    def test_blank_button_text_gets_default(self):
        graph = _chain()
        graph.nodes[0].buttons[0].text = "  "
        enforce_consistency(graph)
        assert graph.nodes[0].buttons[0].text == "Choice"

    def test_shared_button_id_is_split_on_import(self):
        """Two choices of one node that share a button id each get their own button."""
        graph = normalize(
            {
                "nodes": [{"id": "s"}, {"id": "a"}, {"id": "b"}],
                "edges": [
                    {"id": "e1", "from": "s", "to": "a", "buttonId": "b1"},
                    {"id": "e2", "from": "s", "to": "b", "buttonId": "b1"},
                ],
            },
            "shared",
        )

        e1, e2 = graph.find_edge("e1"), graph.find_edge("e2")
        assert e1.button_id == "b1"
        assert e2.button_id != "b1"
        assert graph.find_button(e1).to == "a"
        assert graph.find_button(e2).to == "b"
        _assert_invariants(graph)

    def test_shared_button_id_is_split_by_enforce(self):
        graph = _chain()
        graph.edges.append(Edge(id="e9", from_="S", to="C", button_id="b1"))
        enforce_consistency(graph)

        assert graph.find_button(graph.find_edge("e1")).to == "A"
        assert graph.find_button(graph.find_edge("e9")).to == "C"
        assert len(graph.nodes[0].buttons) == 3
        _assert_invariants(graph)
        once = graph.to_document()
        assert enforce_consistency(graph).to_document() == once


class TestSelectionRepair:
    """Selections are filtered against the current graph and the derived path."""

    def test_xor_retype_truncates(self):
        """An OR node turned XOR keeps only its first choice."""
        graph = normalize(
            {
                "nodes": [{"id": "S", "type": "or"}, {"id": "A"}, {"id": "B"}],
                "edges": [
                    {"id": "e1", "from": "S", "to": "A"},
                    {"id": "e2", "from": "S", "to": "B"},
                ],
                "ui": {"activeSelections": {"S": ["e1", "e2"]}},
            }
        )
        assert graph.ui.active_selections == {"S": ["e1", "e2"]}

        graph.nodes[0].type = NodeType.xor
        enforce_consistency(graph)
        assert graph.ui.active_selections == {"S": ["e1"]}
        assert graph.ui.active_path == ["S", "e1", "A"]

    def test_deleting_downstream_node_retracts_choice(self):
        """Removing C drops e2, so A's selection disappears and the path stops at A."""
        graph = _chain()
        graph.nodes = [node for node in graph.nodes if node.id != "C"]
        enforce_consistency(graph)

        assert graph.find_edge("e2") is None
        assert graph.ui.active_selections == {"S": ["e1"]}
        assert graph.ui.active_path == ["S", "e1", "A"]
        _assert_invariants(graph)

    def test_unreachable_selection_is_pruned(self):
        """A selection on a node the path never visits is dropped."""
        graph = _chain()
        graph.ui.active_selections = {"A": ["e2"]}
        enforce_consistency(graph)
        assert graph.ui.active_selections == {}
        assert graph.ui.active_path == ["S"]

    def test_sync_keeps_empty_selection(self):
        """sync_selections never rebuilds choices from the previous path."""
        graph = _chain()
        graph.ui.active_selections = {}
        sync_selections(graph)
        assert graph.ui.active_path == ["S"]

    def test_enforce_reads_path_when_map_empty(self):
        graph = _chain()
        graph.ui.active_selections = {}
        enforce_consistency(graph)
        assert graph.ui.active_path == ["S", "e1", "A", "e2", "C"]


class TestEditorReferences:
    """References held outside the document are cleared when stale."""

    def test_clears_missing_selected_edge(self):
        graph = _chain()
        editor = EditorState(selected_edge_id="gone")
        enforce_consistency(graph, editor)
        assert editor.selected_edge_id is None

    def test_keeps_existing_selected_edge(self):
        graph = _chain()
        editor = EditorState(selected_edge_id="e1")
        enforce_consistency(graph, editor)
        assert editor.selected_edge_id == "e1"

    def test_clears_pending_choice_of_deleted_source(self):
        graph = _chain()
        editor = EditorState(pending_choice=PendingChoice(source_node_id="C", button_text="Go"))
        graph.nodes = [node for node in graph.nodes if node.id != "C"]
        enforce_consistency(graph, editor)
        assert editor.pending_choice is None

    def test_clears_last_chosen_off_path(self):
        graph = _chain()
        editor = EditorState(last_chosen_edge_id="e2", last_chosen_node_id="C")
        graph.ui.active_selections = {"S": ["e1"]}
        enforce_consistency(graph, editor)
        assert editor.last_chosen_edge_id is None
        assert editor.last_chosen_node_id is None
