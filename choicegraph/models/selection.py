"""Selection and editor-state records."""

from pydantic import BaseModel

from choicegraph.models.graph_document import NodeType


class SelectionResult(BaseModel):
    """outcome of toggling one edge."""

    edge_id: str
    source_node_id: str
    target_node_id: str
    branch_type: NodeType
    selected: bool  # True if the edge ended up chosen


class PendingChoice(BaseModel):
    """a choice waiting for its target node to be picked or created."""

    source_node_id: str
    button_text: str


class EditorState(BaseModel):
    """references held outside the graph document by an editing session.

    None of this is persisted. The consistency pass clears entries that
    point at deleted nodes or edges.
    """

    selected_edge_id: str | None = None
    pending_choice: PendingChoice | None = None
    last_chosen_edge_id: str | None = None
    last_chosen_node_id: str | None = None

    def reset(self) -> None:
        self.selected_edge_id = None
        self.pending_choice = None
        self.last_chosen_edge_id = None
        self.last_chosen_node_id = None
