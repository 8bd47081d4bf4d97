"""ID generation and timestamp utilities."""

import uuid
from collections.abc import Callable
from datetime import datetime, timezone

GRAPH_KIND = "g"
NODE_KIND = "n"
EDGE_KIND = "e"
BUTTON_KIND = "b"


def generate_id(kind: str) -> str:
    """Generate a random id scoped to an entity kind, e.g. ``n_<uuid4>``."""
    return f"{kind}_{uuid.uuid4()}"


def generate_unique_id(kind: str, is_taken: Callable[[str], bool]) -> str:
    """Generate ids until ``is_taken`` rejects none of them."""
    candidate = generate_id(kind)
    while is_taken(candidate):
        candidate = generate_id(kind)
    return candidate


def generate_graph_id() -> str:
    """Generate a graph ID."""
    return generate_id(GRAPH_KIND)


def generate_node_id() -> str:
    """Generate a node ID."""
    return generate_id(NODE_KIND)


def generate_edge_id() -> str:
    """Generate an edge ID."""
    return generate_id(EDGE_KIND)


def generate_button_id() -> str:
    """Generate a button ID."""
    return generate_id(BUTTON_KIND)


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
