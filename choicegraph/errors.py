"""Exceptions raised by the choicegraph engine and store."""


class GraphValidationError(ValueError):
    """Raised when an imported document is structurally unusable."""

    def __init__(self, source_label: str, message: str) -> None:
        self.source_label = source_label
        self.message = message
        super().__init__(f"{source_label}: {message}")


class SelectionRejected(Exception):
    """Raised when a toggled edge is unknown or still dangling.

    The graph is left untouched.
    """

    def __init__(self, edge_id: str, reason: str) -> None:
        self.edge_id = edge_id
        self.reason = reason
        super().__init__(f"cannot select edge {edge_id!r}: {reason}")


class GraphEditError(Exception):
    """Raised when an edit cannot be applied to the current graph."""


class UnknownEntityError(GraphEditError, LookupError):
    """Raised when an edit references a node, edge or graph that does not exist."""


class NoCurrentGraph(GraphEditError):
    """Raised when the store has no graph loaded."""
