"""API routes for editing and playing choice graphs.

Each request loads the graph into a fresh GraphStore, applies one edit and
saves the result.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from choicegraph.errors import (
    GraphEditError,
    GraphValidationError,
    SelectionRejected,
    UnknownEntityError,
)
from choicegraph.models.graph_document import GraphSummary, Node
from choicegraph.models.selection import SelectionResult
from choicegraph.store import GraphStore
from server.graph_db import SqliteGraphStorage

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response Models ---


class CreateGraphRequest(BaseModel):
    """request body for creating a graph."""

    name: str | None = None


class ImportGraphRequest(BaseModel):
    """request body for importing an external graph document."""

    document: Any
    source_label: str = "import"


class ImportGraphResponse(BaseModel):
    graph: dict[str, Any]
    skipped: int  # records dropped while decoding


class RenameGraphRequest(BaseModel):
    name: str


class DuplicateGraphRequest(BaseModel):
    name: str | None = None


class AddNodeRequest(BaseModel):
    x: float
    y: float
    text: str | None = None


class UpdateNodeRequest(BaseModel):
    """partial node update; an explicit null color resets the color."""

    text: str | None = None
    color: str | None = None
    x: float | None = None
    y: float | None = None


class AddChoiceRequest(BaseModel):
    """request body for a new choice; without a target the choice dangles."""

    text: str | None = None
    target_node_id: str | None = None


class ConnectChoiceRequest(BaseModel):
    target_node_id: str


class UpdateChoiceRequest(BaseModel):
    text: str


class ActivePathResponse(BaseModel):
    active_path: list[str]
    end_nodes: list[Node]


# --- Helper Functions ---


def _new_store() -> GraphStore:
    return GraphStore(SqliteGraphStorage())


def _open_store(graph_id: str) -> GraphStore:
    """Load a graph or raise 404, or 422 if the stored document is unusable."""
    store = _new_store()
    try:
        store.load(graph_id)
    except UnknownEntityError:
        raise HTTPException(status_code=404, detail=f"Graph not found: {graph_id}")
    except GraphValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return store


@contextmanager
def _edit_errors() -> Iterator[None]:
    """Translate engine errors into HTTP errors."""
    try:
        yield
    except UnknownEntityError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (GraphEditError, SelectionRejected) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


def _saved(store: GraphStore) -> dict[str, Any]:
    return store.save().to_document()


# --- API Endpoints ---


@router.get("/graphs")
def list_graphs() -> list[GraphSummary]:
    """list stored graphs, most recently updated first."""
    store = _new_store()
    for warning in store.refresh_summaries():
        logger.warning("unreadable graph skipped: %s", warning)
    return store.summaries


@router.post("/graphs")
def create_graph(request: CreateGraphRequest) -> dict[str, Any]:
    """create a graph with a single start node."""
    return _new_store().create_graph(request.name).to_document()


@router.post("/graphs/import")
def import_graph(request: ImportGraphRequest) -> ImportGraphResponse:
    """import an external document, repairing what can be repaired."""
    store = _new_store()
    store.refresh_summaries()
    try:
        graph, skipped = store.import_document(request.document, request.source_label)
    except GraphValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ImportGraphResponse(graph=graph.to_document(), skipped=skipped)


@router.get("/graphs/{graph_id}")
def get_graph(graph_id: str) -> dict[str, Any]:
    """get a graph document."""
    return _open_store(graph_id).current.to_document()


@router.patch("/graphs/{graph_id}")
def rename_graph(graph_id: str, request: RenameGraphRequest) -> dict[str, Any]:
    store = _open_store(graph_id)
    return store.rename(request.name).to_document()


@router.post("/graphs/{graph_id}/duplicate")
def duplicate_graph(graph_id: str, request: DuplicateGraphRequest) -> dict[str, Any]:
    store = _open_store(graph_id)
    store.refresh_summaries()
    return store.duplicate(request.name).to_document()


@router.delete("/graphs/{graph_id}")
def delete_graph(graph_id: str) -> dict:
    """delete a graph."""
    storage = SqliteGraphStorage()
    if not storage.exists(graph_id):
        raise HTTPException(status_code=404, detail=f"Graph not found: {graph_id}")
    storage.delete(graph_id)
    return {"deleted": graph_id}


@router.post("/graphs/{graph_id}/nodes")
def add_node(graph_id: str, request: AddNodeRequest) -> dict[str, Any]:
    store = _open_store(graph_id)
    store.add_node(request.x, request.y, request.text)
    return _saved(store)


@router.patch("/graphs/{graph_id}/nodes/{node_id}")
def update_node(graph_id: str, node_id: str, request: UpdateNodeRequest) -> dict[str, Any]:
    store = _open_store(graph_id)
    fields = request.model_fields_set
    with _edit_errors():
        node = store.current.find_node(node_id)
        if node is None:
            raise UnknownEntityError(f"node not found: {node_id}")
        if "text" in fields and request.text is not None:
            store.set_node_text(node_id, request.text)
        if "color" in fields:
            store.set_node_color(node_id, request.color)
        if request.x is not None or request.y is not None:
            store.move_node(
                node_id,
                request.x if request.x is not None else node.x,
                request.y if request.y is not None else node.y,
            )
    return _saved(store)


@router.post("/graphs/{graph_id}/nodes/{node_id}/toggle-type")
def toggle_node_type(graph_id: str, node_id: str) -> dict[str, Any]:
    store = _open_store(graph_id)
    with _edit_errors():
        store.toggle_node_type(node_id)
    return _saved(store)


@router.delete("/graphs/{graph_id}/nodes/{node_id}")
def delete_node(graph_id: str, node_id: str) -> dict[str, Any]:
    """delete a node and every choice connected to it."""
    store = _open_store(graph_id)
    with _edit_errors():
        store.delete_node(node_id)
    return _saved(store)


@router.post("/graphs/{graph_id}/nodes/{node_id}/choices")
def add_choice(graph_id: str, node_id: str, request: AddChoiceRequest) -> dict[str, Any]:
    store = _open_store(graph_id)
    with _edit_errors():
        if request.target_node_id is None:
            store.add_choice(node_id, request.text)
        else:
            store.begin_pending_choice(node_id, request.text)
            if store.complete_pending_choice(request.target_node_id) is None:
                raise UnknownEntityError(f"node not found: {request.target_node_id}")
    return _saved(store)


@router.post("/graphs/{graph_id}/edges/{edge_id}/connect")
def connect_choice(graph_id: str, edge_id: str, request: ConnectChoiceRequest) -> dict[str, Any]:
    store = _open_store(graph_id)
    with _edit_errors():
        store.connect_choice(edge_id, request.target_node_id)
    return _saved(store)


@router.patch("/graphs/{graph_id}/edges/{edge_id}")
def update_choice(graph_id: str, edge_id: str, request: UpdateChoiceRequest) -> dict[str, Any]:
    store = _open_store(graph_id)
    with _edit_errors():
        store.set_choice_text(edge_id, request.text)
    return _saved(store)


@router.delete("/graphs/{graph_id}/edges/{edge_id}")
def delete_choice(graph_id: str, edge_id: str) -> dict[str, Any]:
    store = _open_store(graph_id)
    with _edit_errors():
        store.delete_edge(edge_id)
    return _saved(store)


@router.post("/graphs/{graph_id}/edges/{edge_id}/toggle")
def toggle_choice(graph_id: str, edge_id: str) -> SelectionResult:
    """select or deselect a choice according to its node's branch type."""
    store = _open_store(graph_id)
    with _edit_errors():
        result = store.toggle_selection(edge_id)
    store.save()
    return result


@router.get("/graphs/{graph_id}/path")
def get_active_path(graph_id: str) -> ActivePathResponse:
    store = _open_store(graph_id)
    return ActivePathResponse(active_path=store.active_path(), end_nodes=store.end_nodes())


@router.delete("/graphs/{graph_id}/path")
def clear_active_path(graph_id: str) -> ActivePathResponse:
    store = _open_store(graph_id)
    store.clear_active_path()
    store.save()
    return ActivePathResponse(active_path=store.active_path(), end_nodes=store.end_nodes())
