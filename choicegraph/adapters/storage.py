"""Storage backends for graph documents."""

import copy
from typing import Any


class GraphStorage:
    """Protocol for persisting graph documents by graph id.

    Documents are plain dicts in the persisted (camelCase) shape.
    """

    def read(self, graph_id: str) -> dict[str, Any] | None:
        """Return the stored document, or None if there is none."""
        raise NotImplementedError

    def write(self, graph_id: str, document: dict[str, Any]) -> None:
        """Insert or replace a document."""
        raise NotImplementedError

    def exists(self, graph_id: str) -> bool:
        raise NotImplementedError

    def list_documents(self) -> list[dict[str, Any]]:
        """Return every stored document."""
        raise NotImplementedError

    def delete(self, graph_id: str) -> None:
        raise NotImplementedError


class InMemoryGraphStorage(GraphStorage):
    """Keeps documents in a dict. Copies on the way in and out."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    def read(self, graph_id: str) -> dict[str, Any] | None:
        document = self.documents.get(graph_id)
        return copy.deepcopy(document) if document is not None else None

    def write(self, graph_id: str, document: dict[str, Any]) -> None:
        self.documents[graph_id] = copy.deepcopy(document)

    def exists(self, graph_id: str) -> bool:
        return graph_id in self.documents

    def list_documents(self) -> list[dict[str, Any]]:
        return [copy.deepcopy(document) for document in self.documents.values()]

    def delete(self, graph_id: str) -> None:
        self.documents.pop(graph_id, None)

    def clear(self) -> None:
        """Remove all documents."""
        self.documents.clear()
