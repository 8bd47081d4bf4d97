"""Tests for active-path derivation and end-node collection."""

from choicegraph.engine.active_path import collect_end_nodes, derive_active_path, derive_path
from choicegraph.engine.normalizer import normalize
from choicegraph.engine.selection import toggle_selection


def _edge(edge_id: str, source: str, target: str | None) -> dict:
    return {"id": edge_id, "from": source, "to": target, "buttonId": f"b-{edge_id}"}


def _graph(nodes: list[tuple[str, str]], edges: list[dict], selections: dict | None = None):
    return normalize(
        {
            "id": "g1",
            "name": "Paths",
            "nodes": [{"id": node_id, "text": node_id, "type": kind} for node_id, kind in nodes],
            "edges": edges,
            "ui": {"activeSelections": selections or {}},
        },
        "test",
    )


def _fork(kind: str):
    """S -> A via e1, S -> B via e2."""
    return _graph(
        [("S", kind), ("A", "xor"), ("B", "xor")],
        [_edge("e1", "S", "A"), _edge("e2", "S", "B")],
    )


class TestXorScenario:
    """Root XOR node with two leaves."""

    def test_select_one_branch(self):
        """Selecting e1 walks into A only, and A is the end node."""
        graph = _fork("xor")
        toggle_selection(graph, "e1")

        assert derive_active_path(graph) == ["S", "e1", "A"]
        assert graph.ui.active_path == ["S", "e1", "A"]
        assert [node.id for node in collect_end_nodes(graph)] == ["A"]

    def test_deselect_returns_to_root(self):
        """Toggling e1 off leaves only the root, which becomes the end node."""
        graph = _fork("xor")
        toggle_selection(graph, "e1")
        toggle_selection(graph, "e1")

        assert derive_active_path(graph) == ["S"]
        assert [node.id for node in collect_end_nodes(graph)] == ["S"]

    def test_xor_cap_applies_during_walk(self):
        """Even with two selections handed in, an XOR node follows only the first."""
        graph = _fork("xor")
        path = derive_path(graph.nodes, graph.edges, {"S": ["e2", "e1"]})
        assert path == ["S", "e2", "B"]


class TestOrScenario:
    """Root OR node with two leaves."""

    def test_both_branches_in_selection_order(self):
        """Selecting e1 then e2 walks both branches in that order."""
        graph = _fork("or")
        toggle_selection(graph, "e1")
        toggle_selection(graph, "e2")

        assert graph.ui.active_path == ["S", "e1", "A", "e2", "B"]
        assert [node.id for node in collect_end_nodes(graph)] == ["A", "B"]

    def test_insertion_order_not_edge_order(self):
        """Selecting e2 first puts the B branch first."""
        graph = _fork("or")
        toggle_selection(graph, "e2")
        toggle_selection(graph, "e1")

        assert graph.ui.active_path == ["S", "e2", "B", "e1", "A"]


class TestCycles:
    """Cycles through the selection chain must terminate."""

    def test_two_node_cycle_terminates(self):
        """A -> B -> A records A again but does not expand it.

        The re-entered node adds one entry, so a cycle path is bounded by
        2n + 1 entries rather than 2n.
        """
        graph = _graph(
            [("A", "xor"), ("B", "xor")],
            [_edge("eAB", "A", "B"), _edge("eBA", "B", "A")],
            {"A": ["eAB"], "B": ["eBA"]},
        )

        assert graph.ui.active_path == ["A", "eAB", "B", "eBA", "A"]
        assert len(graph.ui.active_path) <= 2 * len(graph.nodes) + 1
        assert collect_end_nodes(graph) == []

    def test_self_reference_in_raw_selection(self):
        """derive_path tolerates a selection map that loops straight back."""
        graph = _graph([("A", "xor"), ("B", "xor")], [_edge("eAB", "A", "B"), _edge("eBA", "B", "A")])
        path = derive_path(graph.nodes, graph.edges, {"A": ["eAB"], "B": ["eBA"]})
        assert path == ["A", "eAB", "B", "eBA", "A"]

    def test_shared_descendant_expanded_per_branch(self):
        """A node reached by two disjoint branches is walked on both."""
        graph = _graph(
            [("S", "or"), ("A", "xor"), ("B", "xor"), ("C", "xor"), ("D", "xor")],
            [
                _edge("e1", "S", "A"),
                _edge("e2", "S", "B"),
                _edge("eAC", "A", "C"),
                _edge("eBC", "B", "C"),
                _edge("eCD", "C", "D"),
            ],
            {"S": ["e1", "e2"], "A": ["eAC"], "B": ["eBC"], "C": ["eCD"]},
        )

        assert graph.ui.active_path == [
            "S", "e1", "A", "eAC", "C", "eCD", "D",
            "e2", "B", "eBC", "C", "eCD", "D",
        ]
        assert [node.id for node in collect_end_nodes(graph)] == ["D"]


class TestDeriveEdgeCases:
    """Selections that do not resolve are ignored by the walk."""

    def test_empty_graph(self):
        assert derive_path([], [], {}) == []

    def test_ignores_edges_from_other_nodes(self):
        """A selection naming an edge that leaves another node is skipped."""
        graph = _fork("or")
        path = derive_path(graph.nodes, graph.edges, {"S": ["e1"], "A": ["e2"]})
        assert path == ["S", "e1", "A"]

    def test_ignores_unknown_edges(self):
        graph = _fork("or")
        assert derive_path(graph.nodes, graph.edges, {"S": ["nope", "e2"]}) == ["S", "e2", "B"]

    def test_end_nodes_fall_back_to_root(self):
        """With an empty path the root is the trivial end node."""
        graph = _fork("xor")
        graph.ui.active_path = []
        assert [node.id for node in collect_end_nodes(graph)] == ["S"]
